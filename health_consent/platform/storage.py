"""
Permission storage adapters
Database-backed permission store implementing the platform contract
"""

from typing import Optional, List, Dict, Set, Iterable, Tuple
from datetime import datetime, UTC
import structlog
from sqlalchemy import create_engine, Column, String, DateTime, Boolean, Integer
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker

from ..config import get_consent_config
from ..constants import PermissionFlags
from ..exceptions import PermissionSecurityError
from .base import AppMetadata

logger = structlog.get_logger(__name__)

Base = declarative_base()


class AppRecordDB(Base):
    """SQLAlchemy model for installed apps"""
    __tablename__ = "apps"

    package_name = Column(String, primary_key=True)
    display_name = Column(String, nullable=False)
    icon = Column(String)
    rationale_declared = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False)


class DeclaredPermissionDB(Base):
    """SQLAlchemy model for permissions declared in an app manifest"""
    __tablename__ = "declared_permissions"

    package_name = Column(String, primary_key=True)
    identifier = Column(String, primary_key=True)


class PermissionGrantDB(Base):
    """SQLAlchemy model for grant state and flags"""
    __tablename__ = "permission_grants"

    package_name = Column(String, primary_key=True)
    identifier = Column(String, primary_key=True)
    granted = Column(Boolean, nullable=False, default=False)
    flags = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False)


def _flags_after_revoke(was_granted: bool, flags: int) -> int:
    # A second denial of a permission the user already set becomes USER_FIXED
    if not was_granted and flags & PermissionFlags.USER_SET:
        return flags | PermissionFlags.USER_FIXED
    return flags | PermissionFlags.USER_SET


class PermissionStorage:
    """Storage adapter for health permission grants"""

    def __init__(self, database_url: Optional[str] = None):
        self.config = get_consent_config()
        self.database_url = database_url or self.config.database_url
        self.engine = create_engine(self.database_url)
        self.SessionLocal = sessionmaker(bind=self.engine)

        # Create tables
        Base.metadata.create_all(bind=self.engine)

    # ------------------------------------------------------------------
    # App registry
    # ------------------------------------------------------------------

    def register_app(self, package_name: str, display_name: str,
                     declared: Iterable[str], rationale_declared: bool = True,
                     icon: Optional[str] = None) -> None:
        """Install an app together with its declared permissions"""
        with self.SessionLocal() as session:
            app = session.get(AppRecordDB, package_name)
            if app is None:
                app = AppRecordDB(package_name=package_name, created_at=datetime.now(UTC))
                session.add(app)
            app.display_name = display_name
            app.icon = icon
            app.rationale_declared = rationale_declared

            session.query(DeclaredPermissionDB).filter_by(package_name=package_name).delete()
            for identifier in sorted(set(declared)):
                session.add(DeclaredPermissionDB(package_name=package_name, identifier=identifier))
            session.commit()

        logger.info("Registered app", package_name=package_name)

    def set_flags(self, package_name: str, identifier: str, flags: int) -> None:
        """Overwrite the platform flags of one permission"""
        with self.SessionLocal() as session:
            row = self._grant_row(session, package_name, identifier)
            row.flags = flags
            row.updated_at = datetime.now(UTC)
            session.commit()

    def _grant_row(self, session, package_name: str, identifier: str) -> PermissionGrantDB:
        row = session.get(PermissionGrantDB, (package_name, identifier))
        if row is None:
            row = PermissionGrantDB(package_name=package_name, identifier=identifier,
                                    granted=False, flags=0, updated_at=datetime.now(UTC))
            session.add(row)
        return row

    # ------------------------------------------------------------------
    # Platform contract
    # ------------------------------------------------------------------

    def is_health_platform_available(self) -> bool:
        return self.config.health_platform_available

    def declared_permissions(self, package_name: str) -> Set[str]:
        with self.SessionLocal() as session:
            rows = session.query(DeclaredPermissionDB).filter_by(package_name=package_name).all()
            return {row.identifier for row in rows}

    def granted_permissions(self, package_name: str) -> Set[str]:
        with self.SessionLocal() as session:
            rows = session.query(PermissionGrantDB).filter_by(
                package_name=package_name, granted=True).all()
            return {row.identifier for row in rows}

    def permission_flags(self, package_name: str, identifiers: List[str]) -> Dict[str, int]:
        with self.SessionLocal() as session:
            rows = session.query(PermissionGrantDB).filter(
                PermissionGrantDB.package_name == package_name,
                PermissionGrantDB.identifier.in_(identifiers),
            ).all()
            stored = {row.identifier: row.flags for row in rows}
        return {identifier: stored.get(identifier, 0) for identifier in identifiers}

    def _check_declared(self, session, package_name: str, identifier: str) -> None:
        declared = session.get(DeclaredPermissionDB, (package_name, identifier))
        if declared is None:
            raise PermissionSecurityError(identifier, package_name, reason="permission not declared")

    def grant(self, package_name: str, identifier: str) -> None:
        with self.SessionLocal() as session:
            app = session.get(AppRecordDB, package_name)
            if app is None:
                raise PermissionSecurityError(identifier, package_name, reason="unknown package")
            if not app.rationale_declared:
                raise PermissionSecurityError(identifier, package_name, reason="rationale intent not declared")
            self._check_declared(session, package_name, identifier)

            row = self._grant_row(session, package_name, identifier)
            row.granted = True
            row.flags = PermissionFlags.USER_SET
            row.updated_at = datetime.now(UTC)
            session.commit()

        logger.info("Granted permission", package_name=package_name, permission=identifier)

    def revoke(self, package_name: str, identifier: str) -> None:
        with self.SessionLocal() as session:
            if session.get(AppRecordDB, package_name) is None:
                raise PermissionSecurityError(identifier, package_name, reason="unknown package")
            self._check_declared(session, package_name, identifier)

            row = self._grant_row(session, package_name, identifier)
            row.flags = _flags_after_revoke(bool(row.granted), row.flags or 0)
            row.granted = False
            row.updated_at = datetime.now(UTC)
            session.commit()

        logger.info("Revoked permission", package_name=package_name, permission=identifier)

    def declares_rationale(self, package_name: str) -> bool:
        with self.SessionLocal() as session:
            app = session.get(AppRecordDB, package_name)
            return bool(app and app.rationale_declared)

    def app_metadata(self, package_name: str) -> AppMetadata:
        with self.SessionLocal() as session:
            app = session.get(AppRecordDB, package_name)
            if app is None:
                return AppMetadata(package_name=package_name, display_name=package_name)
            return AppMetadata(package_name=package_name, display_name=app.display_name, icon=app.icon)


class InMemoryPermissionStorage(PermissionStorage):
    """In-memory storage for testing"""

    def __init__(self, available: bool = True):
        self.available = available
        self.apps: Dict[str, AppMetadata] = {}
        self.rationale: Dict[str, bool] = {}
        self.declared: Dict[str, Set[str]] = {}
        self.grants: Dict[Tuple[str, str], bool] = {}
        self.flags: Dict[Tuple[str, str], int] = {}
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.calls: List[Tuple[str, str, str]] = []

    def register_app(self, package_name: str, display_name: str,
                     declared: Iterable[str], rationale_declared: bool = True,
                     icon: Optional[str] = None) -> None:
        self.apps[package_name] = AppMetadata(
            package_name=package_name, display_name=display_name, icon=icon)
        self.rationale[package_name] = rationale_declared
        self.declared[package_name] = set(declared)

    def set_granted(self, package_name: str, identifiers: Iterable[str]) -> None:
        """Seed already-granted permissions"""
        for identifier in identifiers:
            self.grants[(package_name, identifier)] = True

    def set_flags(self, package_name: str, identifier: str, flags: int) -> None:
        self.flags[(package_name, identifier)] = flags

    def fail_on(self, package_name: str, identifier: str, error: Exception) -> None:
        """Make the next grant or revoke of identifier raise error"""
        self.failures[(package_name, identifier)] = error

    def is_health_platform_available(self) -> bool:
        return self.available

    def declared_permissions(self, package_name: str) -> Set[str]:
        return set(self.declared.get(package_name, set()))

    def granted_permissions(self, package_name: str) -> Set[str]:
        return {identifier for (pkg, identifier), granted in self.grants.items()
                if pkg == package_name and granted}

    def permission_flags(self, package_name: str, identifiers: List[str]) -> Dict[str, int]:
        return {identifier: self.flags.get((package_name, identifier), 0)
                for identifier in identifiers}

    def _raise_injected(self, package_name: str, identifier: str) -> None:
        error = self.failures.pop((package_name, identifier), None)
        if error is not None:
            raise error
        if identifier not in self.declared.get(package_name, set()):
            raise PermissionSecurityError(identifier, package_name, reason="permission not declared")

    def grant(self, package_name: str, identifier: str) -> None:
        self.calls.append(("grant", package_name, identifier))
        self._raise_injected(package_name, identifier)
        self.grants[(package_name, identifier)] = True
        self.flags[(package_name, identifier)] = PermissionFlags.USER_SET

    def revoke(self, package_name: str, identifier: str) -> None:
        self.calls.append(("revoke", package_name, identifier))
        self._raise_injected(package_name, identifier)
        key = (package_name, identifier)
        self.flags[key] = _flags_after_revoke(self.grants.get(key, False), self.flags.get(key, 0))
        self.grants[key] = False

    def declares_rationale(self, package_name: str) -> bool:
        return self.rationale.get(package_name, False)

    def app_metadata(self, package_name: str) -> AppMetadata:
        return self.apps.get(
            package_name, AppMetadata(package_name=package_name, display_name=package_name))
