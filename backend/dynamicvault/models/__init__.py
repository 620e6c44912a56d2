"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Asset is the hub: price history, transactions, and predictions reference it

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from dynamicvault.models.user import User  # noqa: F401
from dynamicvault.models.auth_session import AuthSession  # noqa: F401
from dynamicvault.models.asset import Asset  # noqa: F401
from dynamicvault.models.price_history import PriceHistory  # noqa: F401
from dynamicvault.models.transaction import Transaction  # noqa: F401
from dynamicvault.models.oracle_prediction import OraclePrediction  # noqa: F401
from dynamicvault.models.data_source import DataSource  # noqa: F401
