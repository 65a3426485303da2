"""
Service layer.

Each module groups the ``@transactional`` functions behind one area of the
API (accounts, catalog, orders, client orders, discounts, purchasing,
reports, site builder, admin and chat). Functions take ids as strings,
return plain dicts and raise :mod:`marketplace.errors` exceptions.
"""
