"""
Schema bootstrap.

Importing this module registers every ORM model on the shared ``metadata``;
``create_schema`` / ``drop_schema`` create or drop all tables on the
application engine.
"""

from marketplace.database.config.connection_engine import connection_engine, metadata
from marketplace.database.entities.user import User  # noqa: F401
from marketplace.database.entities.admin_role import AdminRole  # noqa: F401
from marketplace.database.entities.product import Product  # noqa: F401
from marketplace.database.entities.collection import Collection  # noqa: F401
from marketplace.database.entities.discount import Discount  # noqa: F401
from marketplace.database.entities.customer import Customer  # noqa: F401
from marketplace.database.entities.vendor import Vendor  # noqa: F401
from marketplace.database.entities.order import Order  # noqa: F401
from marketplace.database.entities.client_order import ClientOrder  # noqa: F401
from marketplace.database.entities.purchase_order import PurchaseOrder  # noqa: F401
from marketplace.database.entities.site_builder import SupplierSiteBuilder  # noqa: F401
from marketplace.database.entities.conversations import Conversation  # noqa: F401
from marketplace.database.entities.messages import Message  # noqa: F401
from marketplace.database.entities.chat_status import ChatStatus  # noqa: F401
from marketplace.database.entities.notification import Notification  # noqa: F401
from marketplace.database.entities.supplier_settings import SupplierSettings  # noqa: F401
from marketplace.database.entities.client_profile import ClientProfile  # noqa: F401
from marketplace.database.entities.support_message import SupportMessage  # noqa: F401


def create_schema() -> None:
    metadata.create_all(bind=connection_engine)


def drop_schema() -> None:
    metadata.drop_all(bind=connection_engine)
