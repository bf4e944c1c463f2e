from app.models.user import User, RoleEnum
from app.models.password_history import PasswordHistory
