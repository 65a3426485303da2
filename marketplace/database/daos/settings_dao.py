"""
Settings DAOs

Per-account settings records (supplier store settings, client profiles).
Both are fetched or created on first access, so callers never see a missing
record for an existing account.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.database.entities.client_profile import ClientProfile
from marketplace.database.entities.supplier_settings import SupplierSettings

logger = logging.getLogger("uvicorn")


class SupplierSettingsDao:
    """Data Access Object (DAO) for SupplierSettings entities."""

    def fetchSettings(self, session: Session, supplier_id: uuid.UUID) -> Optional[SupplierSettings]:
        try:
            return session.query(SupplierSettings).filter(SupplierSettings.supplier_id == supplier_id).first()
        except Exception as e:
            logger.error(f"Error in SupplierSettingsDao.fetchSettings. Error Message: {e}")
            raise e

    def fetchOrCreateSettings(self, session: Session, supplier_id: uuid.UUID) -> SupplierSettings:
        try:
            settings = self.fetchSettings(session, supplier_id)
            if settings is None:
                settings = SupplierSettings(supplier_id=supplier_id)
                session.add(settings)
                session.flush()
            return settings
        except Exception as e:
            logger.error(f"Error in SupplierSettingsDao.fetchOrCreateSettings. Error Message: {e}")
            raise e

    def fetchSettingsByStoreName(self, session: Session, store_name: str) -> Optional[SupplierSettings]:
        try:
            # store_details is JSON, so the match happens in Python
            for settings in session.query(SupplierSettings).all():
                if (settings.store_details or {}).get("store_name") == store_name:
                    return settings
            return None
        except Exception as e:
            logger.error(f"Error in SupplierSettingsDao.fetchSettingsByStoreName. Error Message: {e}")
            raise e

    def fetchSettingsByRecoveryToken(self, session: Session, token_hash: str) -> Optional[SupplierSettings]:
        try:
            return session.query(SupplierSettings).filter(SupplierSettings.recovery_email_verification_token == token_hash).first()
        except Exception as e:
            logger.error(f"Error in SupplierSettingsDao.fetchSettingsByRecoveryToken. Error Message: {e}")
            raise e


class ClientProfileDao:
    """Data Access Object (DAO) for ClientProfile entities."""

    def fetchOrCreateProfile(self, session: Session, user_id: uuid.UUID) -> ClientProfile:
        try:
            profile = session.query(ClientProfile).filter(ClientProfile.user_id == user_id).first()
            if profile is None:
                profile = ClientProfile(user_id=user_id)
                session.add(profile)
                session.flush()
            return profile
        except Exception as e:
            logger.error(f"Error in ClientProfileDao.fetchOrCreateProfile. Error Message: {e}")
            raise e
