from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .account_service import AccountService
from .dependencies import get_account_service
from .models import Account

_security = HTTPBasic(auto_error=False)


# PUBLIC_INTERFACE
def get_current_account(
    creds: Optional[HTTPBasicCredentials] = Depends(_security),
    accounts: AccountService = Depends(get_account_service),
) -> Account:
    """
    Resolve the acting account from HTTP Basic credentials.

    Raises:
        HTTPException(401) with ``WWW-Authenticate: Basic`` if credentials are
        missing or do not match a registered account.
    """
    if creds is None or not creds.username or creds.password is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    account = accounts.authenticate(creds.username, creds.password)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return account
