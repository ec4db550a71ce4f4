from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from infoline.core.config import get_settings

settings = get_settings()

connect_args = {}
if settings.database_url.startswith("postgresql"):
    # Server-side limit so a stuck statement surfaces as a timeout
    connect_args["options"] = f"-c statement_timeout={settings.database_statement_timeout_ms}"

engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
