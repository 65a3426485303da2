"""
Multi-tenant marketplace backend.

Subpackages
-----------
- api: FastAPI routers, auth guards, payload encryption and chat presence
- crypt: password hashing and the CryptoJS-compatible AES cipher
- database: settings, ORM entities, DAOs and the transactional service layer
"""
