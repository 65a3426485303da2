"""
The `database` package is responsible for all interactions with the marketplace database.
It provides configuration, entity definitions, CRUD operations, and the service functions
that the API routers call.

Contents:
    - config:
        Settings and the SQLAlchemy engine, metadata and declarative base.

    - entities:
        SQLAlchemy entity models with their save hooks.

    - daos:
        Data Access Objects (DAOs) providing CRUD operations for the entities.

    - core:
        Service functions that connect the API routers with the database
        and orchestrate higher-level operations.

    - helpers:
        Transaction management, UTC time, id parsing and text utilities.

    - schema:
        Imports every entity and creates/drops all tables.
"""
