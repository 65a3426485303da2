"""
Entities Package: SQLAlchemy 2.0 ORM Models (UUID + UTC)
=========================================================

The `entities` package defines the ORM models of the marketplace, mapping
database tables to Python classes using SQLAlchemy 2.0-typed mappings.
These classes form the persistence backbone and are consumed by DAOs
(`daos` package).

Tech Stack & Conventions
------------------------
- Portable `Uuid` primary keys (native UUID on PostgreSQL, CHAR(32) on SQLite)
- Timezone-aware timestamps (UTC)
- SQLAlchemy 2.0 style `Mapped[...]` + `mapped_column(...)`
- Embedded documents (order lines, theme, counters) as mutable JSON columns
- Save hooks as `before_insert` / `before_update` mapper events
- Soft delete through a `status` value; list queries filter it out

Contents
--------
- User, AdminRole (+ PERMISSION_CATALOG)
- Product, Collection (+ collection_product association)
- Discount
- Customer, Vendor, PurchaseOrder
- Order (legacy supplier-created), ClientOrder (self-service)
- SupplierSiteBuilder, SupplierSettings
- ClientProfile, SupportMessage
- Conversation (+ conversation_participant), Message, ChatStatus, Notification

`marketplace.database.schema` imports every model so the mapper registry and
`metadata` are complete before tables are created.
"""
