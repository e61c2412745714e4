from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from app.core.database import get_db
from app.models import User
from app.services.catalog import ProductCatalog
from app.services.identity import Identity, InvalidSessionError, resolve_identity
from app.services.reconcile import OrderReconciler
from app.services.toss import TossPaymentsClient

security = HTTPBearer(auto_error=False)


def get_optional_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> Identity | None:
    """None for anonymous checkout; 401 for a token that no longer resolves."""
    token = credentials.credentials if credentials else None
    try:
        return resolve_identity(db, token)
    except InvalidSessionError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="로그인 정보를 확인할 수 없습니다. 다시 로그인해주세요.",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_current_identity(identity: Identity | None = Depends(get_optional_identity)) -> Identity:
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="로그인이 필요합니다.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def get_current_user(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, int(identity.user_id))
    if not user:
        raise HTTPException(status_code=404, detail="사용자를 찾을 수 없습니다.")
    return user


def get_payment_gateway(request: Request) -> TossPaymentsClient:
    return request.app.state.payment_gateway


def get_catalog(request: Request) -> ProductCatalog:
    return request.app.state.catalog


def get_reconciler(
    gateway: TossPaymentsClient = Depends(get_payment_gateway),
    catalog: ProductCatalog = Depends(get_catalog),
) -> OrderReconciler:
    return OrderReconciler(gateway, catalog)
