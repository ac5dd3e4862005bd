"""Data models for mevdash."""

from mevdash.models.activity import MempoolActivity
from mevdash.models.opportunity import NewOpportunity, Opportunity
from mevdash.models.payload import InvalidPayload
from mevdash.models.status import BlockchainStatus, BotSettings, BotStats
from mevdash.models.transaction import NewTransaction, Transaction, TxStatus

__all__ = [
    "BlockchainStatus",
    "BotSettings",
    "BotStats",
    "InvalidPayload",
    "MempoolActivity",
    "NewOpportunity",
    "NewTransaction",
    "Opportunity",
    "Transaction",
    "TxStatus",
]
