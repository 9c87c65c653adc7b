"""
Core package — cross-cutting concerns.

Modules:
    config          — environment variables & settings
    logging_config  — JSON / console logging
    errors          — exception hierarchy & handlers
    middleware      — request logging & correlation IDs
"""
