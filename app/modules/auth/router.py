from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.dependencies.dbDependencies import get_db
from app.modules.auth.service import AuthService
from app.modules.auth.dependencies import get_current_user
from app.modules.auth.models import User
from app.modules.auth.schemas import UserCreate, UserLogin, UserOut, TokenResponse

auth_router = APIRouter()

@auth_router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    Registrar nuevo usuario.
    """
    return AuthService(db).create_user(user_data)

@auth_router.post("/login", response_model=TokenResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """
    Login de usuario. Retorna token de acceso y lista de organizaciones.
    """
    return AuthService(db).login(credentials.email, credentials.password)

@auth_router.get("/me", response_model=UserOut)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """
    Obtener información del usuario actual.
    """
    return current_user
