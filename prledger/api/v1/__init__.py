from prledger.api.v1 import admin, contributions

__all__ = [
    "admin",
    "contributions",
]
