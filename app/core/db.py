from sqlmodel import Session, create_engine, select

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# SQLite needs special handling for FastAPI's threadpool
connect_args = {}
if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
    connect_args["check_same_thread"] = False

engine = create_engine(settings.SQLALCHEMY_DATABASE_URI, connect_args=connect_args)


def get_session():
    with Session(engine) as session:
        yield session


def init_db(session: Session) -> None:
    """Seed predefined categories and the first superuser if missing."""
    from app import crud
    from app.models import User, UserCreate

    added = crud.seed_categories(session=session)
    if added:
        logger.info(f"Seeded {added} predefined categories")

    user = session.exec(
        select(User).where(User.email == settings.FIRST_SUPERUSER)
    ).first()
    if not user:
        user_in = UserCreate(
            email=settings.FIRST_SUPERUSER,
            password=settings.FIRST_SUPERUSER_PASSWORD,
            first_name="Admin",
            last_name="User",
            is_superuser=True,
        )
        crud.create_user(session=session, user_create=user_in)
        logger.info(f"Created first superuser {settings.FIRST_SUPERUSER}")
