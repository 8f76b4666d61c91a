from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.crud import wallet as crud
from app.database import get_db
from app.models.user import User
from app.schemas.wallet import (
    LedgerReportResponse,
    WalletBalance,
    WalletMovementRequest,
    WalletTransactionResponse,
    WalletTransactionsResponse,
)
from app.services import wallet_ledger
from app.services.auth import get_current_user, require_admin, require_staff

router = APIRouter()


def _balance_response(db: Session, user_id: int) -> WalletBalance:
    wallet = crud.get_wallet_by_user(db, user_id)
    return WalletBalance(
        user_id=user_id,
        balance=wallet_ledger.get_balance(db, user_id),
        updated_at=wallet.updated_at if wallet else None,
    )


@router.get("/me", response_model=WalletBalance)
def read_my_balance(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return _balance_response(db, current_user.id)


@router.get("/me/transactions", response_model=WalletTransactionsResponse)
def read_my_transactions(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return WalletTransactionsResponse(
        balance=wallet_ledger.get_balance(db, current_user.id),
        transactions=wallet_ledger.list_transactions(db, current_user.id),
    )


@router.get("/users/{user_id}", response_model=WalletBalance)
def read_user_balance(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return _balance_response(db, user_id)


@router.get("/users/{user_id}/transactions", response_model=WalletTransactionsResponse)
def read_user_transactions(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return WalletTransactionsResponse(
        balance=wallet_ledger.get_balance(db, user_id),
        transactions=wallet_ledger.list_transactions(db, user_id),
    )


@router.post("/users/{user_id}/topup", response_model=WalletTransactionResponse)
def topup_wallet(
    user_id: int,
    request: WalletMovementRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    if db.get(User, user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    return wallet_ledger.topup(db, user_id, request.amount, request.description)


@router.post("/users/{user_id}/withdraw", response_model=WalletTransactionResponse)
def withdraw_from_wallet(
    user_id: int,
    request: WalletMovementRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return wallet_ledger.withdraw(db, user_id, request.amount, request.description)


@router.get("/{wallet_id}/verify", response_model=LedgerReportResponse)
def verify_wallet_ledger(
    wallet_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return vars(wallet_ledger.verify_ledger(db, wallet_id))
