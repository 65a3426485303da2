"""
AdminRole DAO

Data access for `AdminRole`: create, fetch by id or name, list and delete.
Session lifecycle is owned by the caller.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.database.entities.admin_role import AdminRole

logger = logging.getLogger("uvicorn")


class AdminRoleDao:
    """Data Access Object (DAO) for AdminRole entities."""

    def createRole(self, session: Session, role: AdminRole) -> AdminRole:
        try:
            session.add(role)
            session.flush()
            return role
        except Exception as e:
            logger.error(f"Error in AdminRoleDao.createRole. Error Message: {e}")
            raise e

    def fetchRoleById(self, session: Session, role_id: uuid.UUID) -> Optional[AdminRole]:
        try:
            return session.get(AdminRole, role_id)
        except Exception as e:
            logger.error(f"Error in AdminRoleDao.fetchRoleById. Error Message: {e}")
            raise e

    def fetchRoleByName(self, session: Session, name: str) -> Optional[AdminRole]:
        try:
            return session.query(AdminRole).filter(AdminRole.name == name.strip().lower()).first()
        except Exception as e:
            logger.error(f"Error in AdminRoleDao.fetchRoleByName. Error Message: {e}")
            raise e

    def fetchRoles(self, session: Session, include_inactive: bool = True) -> List[AdminRole]:
        try:
            query = session.query(AdminRole)
            if not include_inactive:
                query = query.filter(AdminRole.is_active.is_(True))
            return query.order_by(AdminRole.is_system_role.desc(), AdminRole.name.asc()).all()
        except Exception as e:
            logger.error(f"Error in AdminRoleDao.fetchRoles. Error Message: {e}")
            raise e

    def deleteRole(self, session: Session, role: AdminRole) -> None:
        try:
            session.delete(role)
            session.flush()
        except Exception as e:
            logger.error(f"Error in AdminRoleDao.deleteRole. Error Message: {e}")
            raise e
