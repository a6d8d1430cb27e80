from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..account_service import AccountService
from ..auth import get_current_account
from ..dependencies import get_account_service
from ..models import Account
from ..schemas import AccountOut, AccountRegister, ErrorResponse

router = APIRouter(
    prefix="/api/v1/accounts",
    tags=["accounts"],
)


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=AccountOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register Account",
    responses={
        409: {"model": ErrorResponse, "description": "Username already registered"},
        422: {"model": ErrorResponse, "description": "Validation error"},
    },
)
def register(payload: AccountRegister, accounts: AccountService = Depends(get_account_service)) -> AccountOut:
    account = accounts.register(payload.username, payload.password, payload.confirm_password)
    return AccountOut.from_account(account)


# PUBLIC_INTERFACE
@router.get("/me", response_model=AccountOut, summary="Current Account")
def me(account: Account = Depends(get_current_account)) -> AccountOut:
    return AccountOut.from_account(account)


# PUBLIC_INTERFACE
@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Current Account",
    description="Delete the current account together with all of its todos.",
)
def delete_me(
    account: Account = Depends(get_current_account),
    accounts: AccountService = Depends(get_account_service),
) -> None:
    accounts.delete_account(account.username)
    return None
