import logging

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from movieseat.core.config import Settings
from movieseat.core.security import get_password_hash
from movieseat.db.base import Base
from movieseat.models.user import User

logger = logging.getLogger(__name__)


def create_database(settings: Settings):
    """Create the PostgreSQL database if it doesn't exist."""
    if not settings.uses_postgres:
        return
    try:
        # Connect to default 'postgres' database to check/create target DB
        con = psycopg2.connect(
            user=settings.POSTGRES_USER,
            password=settings.POSTGRES_PASSWORD,
            host=settings.POSTGRES_SERVER,
            port=settings.POSTGRES_PORT,
            dbname="postgres"
        )
        con.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
        cur = con.cursor()

        cur.execute(
            "SELECT 1 FROM pg_catalog.pg_database WHERE datname = %s",
            (settings.POSTGRES_DB,),
        )
        exists = cur.fetchone()

        if not exists:
            logger.info("Database %s does not exist. Creating...", settings.POSTGRES_DB)
            cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(settings.POSTGRES_DB)))
            logger.info("Database %s created successfully.", settings.POSTGRES_DB)
        else:
            logger.info("Database %s already exists.", settings.POSTGRES_DB)

        cur.close()
        con.close()
    except psycopg2.Error as e:
        # DATABASE_URL may point at a server where we cannot create databases
        logger.error("Error creating database: %s", e)


def create_tables(engine: Engine):
    Base.metadata.create_all(bind=engine)


def ensure_initial_admin(db: Session, settings: Settings):
    """Create the bootstrap admin, or promote the existing account with that email."""
    if not settings.INITIAL_ADMIN_EMAIL or not settings.INITIAL_ADMIN_PASSWORD:
        return None

    user = db.query(User).filter(User.email == settings.INITIAL_ADMIN_EMAIL).first()
    if user is None:
        user = User(
            email=settings.INITIAL_ADMIN_EMAIL,
            full_name=settings.INITIAL_ADMIN_NAME,
            password_hash=get_password_hash(settings.INITIAL_ADMIN_PASSWORD),
            role="admin",
        )
        db.add(user)
        db.commit()
        logger.info("Initial admin %s created.", user.email)
    elif user.role != "admin":
        user.role = "admin"
        db.commit()
        logger.info("User %s promoted to admin.", user.email)
    return user
