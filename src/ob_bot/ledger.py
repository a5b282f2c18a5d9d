import logging
from typing import List, Optional, Protocol, Sequence, Tuple

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException, UnconfirmedTxError
from solana.rpc.models import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from .errors import SubmissionError

logger = logging.getLogger(__name__)

KeyedAccount = Tuple[Pubkey, bytes]


class Ledger(Protocol):
    """Read/write surface the bot needs from a Solana RPC node."""

    async def scan_program_accounts(self, program_id: Pubkey, data_size: Optional[int] = None) -> List[KeyedAccount]:
        ...

    async def get_account(self, address: Pubkey) -> Optional[bytes]:
        ...

    async def get_balance(self, address: Pubkey) -> int:
        ...

    async def submit_and_confirm(self, instructions: Sequence[Instruction], signers: Sequence[Keypair]) -> str:
        ...


class RpcLedger:
    """`Ledger` over solana-py's AsyncClient. The first signer pays fees."""

    def __init__(self, rpc_url: str, commitment: str = "confirmed", client: Optional[AsyncClient] = None):
        self.commitment = Commitment(commitment)
        self.client = client or AsyncClient(rpc_url, commitment=self.commitment)

    async def close(self):
        await self.client.close()

    async def scan_program_accounts(self, program_id: Pubkey, data_size: Optional[int] = None) -> List[KeyedAccount]:
        filters = [data_size] if data_size is not None else None
        resp = await self.client.get_program_accounts(
            program_id, commitment=self.commitment, encoding="base64", filters=filters
        )
        return [(ka.pubkey, bytes(ka.account.data)) for ka in resp.value]

    async def get_account(self, address: Pubkey) -> Optional[bytes]:
        resp = await self.client.get_account_info(address, commitment=self.commitment)
        if resp.value is None:
            return None
        return bytes(resp.value.data)

    async def get_balance(self, address: Pubkey) -> int:
        resp = await self.client.get_balance(address, commitment=self.commitment)
        return resp.value

    async def submit_and_confirm(self, instructions: Sequence[Instruction], signers: Sequence[Keypair]) -> str:
        if not signers:
            raise ValueError("at least one signer (the fee payer) is required")
        payer = signers[0]
        sig = None
        try:
            blockhash = (await self.client.get_latest_blockhash(self.commitment)).value.blockhash
            msg = Message.new_with_blockhash(list(instructions), payer.pubkey(), blockhash)
            tx = Transaction(list(signers), msg, blockhash)
            sig = (await self.client.send_transaction(
                tx, opts=TxOpts(skip_confirmation=True, preflight_commitment=self.commitment)
            )).value
            logger.debug("sent %s, waiting for %s", sig, self.commitment)
            status = await self.client.confirm_transaction(sig, commitment=self.commitment)
        except (RPCException, SolanaRpcException, UnconfirmedTxError) as e:
            raise SubmissionError(f"transaction failed: {e}", signature=str(sig) if sig else None) from e

        result = status.value[0] if status.value else None
        if result is not None and result.err is not None:
            raise SubmissionError(f"transaction {sig} failed on chain: {result.err}", signature=str(sig))
        return str(sig)
