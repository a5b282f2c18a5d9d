import logging

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.instructions import create_associated_token_account, get_associated_token_address

from .errors import ProvisioningError, SubmissionError
from .ledger import Ledger

logger = logging.getLogger(__name__)


class SettlementAccounts:
    """Associated token accounts for one owner, created on first use."""

    def __init__(self, ledger: Ledger, owner: Keypair):
        self.ledger = ledger
        self.owner = owner

    def address_for(self, mint: Pubkey) -> Pubkey:
        return get_associated_token_address(self.owner.pubkey(), mint)

    async def get_or_create(self, mint: Pubkey) -> Pubkey:
        ata = self.address_for(mint)
        if await self.ledger.get_account(ata) is not None:
            logger.debug("associated token account exists: %s", ata)
            return ata

        logger.info("creating associated token account for mint %s...", mint)
        owner = self.owner.pubkey()
        ix = create_associated_token_account(owner, owner, mint)
        try:
            sig = await self.ledger.submit_and_confirm([ix], [self.owner])
        except SubmissionError as e:
            raise ProvisioningError(f"could not create token account {ata} for mint {mint}: {e}",
                                    signature=e.signature) from e
        logger.info("created associated token account %s, tx: %s", ata, sig)
        return ata
