"""
Service wiring and dependencies
"""

import logging
from typing import Optional

from ..config import SecureLedgerConfig, get_config
from ..gateway import EncryptionGateway
from ..keys import load_key_material
from ..ledger import LedgerWriter
from ..storage import LedgerStore, create_ledger_store
from ..transfers import TransferProcessor


logger = logging.getLogger(__name__)


class LedgerService:
    """Secure ledger with all components initialized from one configuration"""

    def __init__(self, config: SecureLedgerConfig, store: Optional[LedgerStore] = None):
        self.config = config

        # Key material is resolved once and shared read-only
        self.key_material = load_key_material(config)
        self.gateway = EncryptionGateway(self.key_material, rsa_padding=config.rsa_padding)

        # Initialize storage
        self.store = store or create_ledger_store(config.database_url)

        self.writer = LedgerWriter(self.store, self.gateway)
        self.processor = TransferProcessor(self.gateway, self.writer)
        logger.info(f"LedgerService initialized (environment={config.environment})")

    def close(self) -> None:
        self.store.close()


# Global service instance, created on first use
_ledger_service: Optional[LedgerService] = None


def get_ledger_service() -> LedgerService:
    """Dependency to get the ledger service"""
    global _ledger_service
    if _ledger_service is None:
        _ledger_service = LedgerService(get_config())
    return _ledger_service


def set_ledger_service(service: Optional[LedgerService]) -> None:
    """Install (or clear, with None) the global ledger service"""
    global _ledger_service
    _ledger_service = service
