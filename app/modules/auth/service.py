from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload
from datetime import datetime, timezone
import logging

from app.modules.auth.models import User, UserOrganization
from app.modules.auth.schemas import (
    UserCreate, UserOut, TokenResponse, UserOrganizationOut
)
from app.modules.auth.utils import hash_password, verify_password, create_access_token
from app.core.config import settings

logger = logging.getLogger(__name__)


class AuthService:
    """Registro e inicio de sesión de usuarios"""

    def __init__(self, db: Session):
        self.db = db

    def create_user(self, user_data: UserCreate) -> User:
        """Registrar nuevo usuario."""
        email = user_data.email.lower()
        existing = self.db.query(User).filter(User.email == email).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El email ya está registrado"
            )

        user = User(
            name=user_data.name,
            email=email,
            password=hash_password(user_data.password),
            is_active=True
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User registered {user.id}")
        return user

    def login(self, email: str, password: str) -> TokenResponse:
        """
        Login de usuario con listado de organizaciones.
        """
        user = self.db.query(User).options(
            selectinload(User.user_organizations).selectinload(UserOrganization.organization)
        ).filter(User.email == email.lower()).first()

        if not user or not verify_password(password, user.password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Credenciales incorrectas"
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Cuenta inactiva"
            )

        user.last_login = datetime.now(timezone.utc)
        self.db.commit()

        access_token = create_access_token({
            "sub": str(user.id),
            "email": user.email,
            "user_name": user.name
        })

        return TokenResponse(
            access_token=access_token,
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserOut.model_validate(user),
            organizations=self.list_memberships(user)
        )

    def list_memberships(self, user: User) -> list[UserOrganizationOut]:
        memberships = []
        for uo in user.user_organizations:
            if uo.is_active:
                memberships.append(UserOrganizationOut(
                    id=uo.id,
                    org_id=uo.org_id,
                    role=uo.role,
                    is_active=uo.is_active,
                    joined_at=uo.joined_at,
                    org_name=uo.organization.name if uo.organization else None
                ))
        return memberships
