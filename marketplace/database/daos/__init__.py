"""
DAOs Package: Data Access Layer (SQLAlchemy 2.0)
=================================================

The `daos` package provides the Data Access Layer for the marketplace.
It encapsulates all interactions with SQLAlchemy ORM entities, providing
clean CRUD APIs for the service layer while hiding direct query details.

Conventions
-----------
- Session lifecycle (open/commit/rollback) is handled by callers via ``@transactional``
- DAOs flush but never commit
- Supplier-owned records are always fetched together with their ``supplier_id``
- DAOs log and re-raise exceptions so upper layers decide error policy

Contents
--------
- UserDao, AdminRoleDao
- ProductDao, CollectionDao
- DiscountDao
- CustomerDao, VendorDao (contact_dao)
- OrderDao, ClientOrderDao, PurchaseOrderDao (order_dao)
- SiteBuilderDao
- ConversationDao, MessageDao, ChatStatusDao, NotificationDao
"""
