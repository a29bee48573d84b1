"""
Скрипт для создания таблиц и назначения администратора

    python -m app.scripts.init_db --admin-email admin@example.com --admin-password secret
"""
import argparse
from app.core.database import Base, SessionLocal, engine
from app.core.security import get_password_hash
from app.models import User
from app.models.user import ROLE_ADMIN


def init_db():
    """Создание всех таблиц, которых ещё нет в БД"""
    print("Creating tables...")
    Base.metadata.create_all(bind=engine)
    print(f"✓ Tables ready: {', '.join(sorted(Base.metadata.tables))}")


def ensure_admin(email: str, password: str | None = None) -> User:
    """Создаёт администратора или повышает существующего пользователя до admin"""
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
        if user:
            user.role = ROLE_ADMIN
            print(f"✓ User {email} promoted to admin")
        else:
            if not password:
                raise SystemExit(f"User {email} does not exist, --admin-password is required")
            user = User(
                email=email,
                password_hash=get_password_hash(password),
                full_name="Administrator",
                role=ROLE_ADMIN,
                applications_count=0
            )
            db.add(user)
            print(f"✓ Admin {email} created")
        db.commit()
        db.refresh(user)
        return user
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Инициализация БД портала вакансий")
    parser.add_argument("--admin-email", help="Email администратора")
    parser.add_argument("--admin-password", help="Пароль (нужен только для нового пользователя)")
    args = parser.parse_args()

    init_db()
    if args.admin_email:
        ensure_admin(args.admin_email, args.admin_password)
    print("Database initialization completed!")
