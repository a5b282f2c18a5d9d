from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from solana.rpc.core import RPCException
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from spl.token.instructions import create_associated_token_account

from ob_bot.errors import SubmissionError
from ob_bot.ledger import RpcLedger


def _client(err=None, send_exc=None):
    client = Mock()
    client.get_latest_blockhash = AsyncMock(
        return_value=SimpleNamespace(value=SimpleNamespace(blockhash=Hash.default()))
    )
    if send_exc is not None:
        client.send_transaction = AsyncMock(side_effect=send_exc)
    else:
        client.send_transaction = AsyncMock(return_value=SimpleNamespace(value=Signature.default()))
    client.confirm_transaction = AsyncMock(
        return_value=SimpleNamespace(value=[SimpleNamespace(err=err)])
    )
    return client


def _ix(owner):
    me = owner.pubkey()
    return create_associated_token_account(me, me, Pubkey.new_unique())


@pytest.mark.asyncio
async def test_submit_signs_sends_and_confirms(owner):
    client = _client()
    ledger = RpcLedger("http://localhost:8899", client=client)

    sig = await ledger.submit_and_confirm([_ix(owner)], [owner])

    assert sig == str(Signature.default())
    tx = client.send_transaction.await_args.args[0]
    assert tx.message.account_keys[0] == owner.pubkey()
    client.confirm_transaction.assert_awaited_once()


@pytest.mark.asyncio
async def test_on_chain_error_is_a_submission_error(owner):
    ledger = RpcLedger("http://localhost:8899", client=_client(err="InstructionError"))
    with pytest.raises(SubmissionError, match="failed on chain") as exc:
        await ledger.submit_and_confirm([_ix(owner)], [owner])
    assert exc.value.signature == str(Signature.default())


@pytest.mark.asyncio
async def test_rpc_rejection_is_a_submission_error(owner):
    client = _client(send_exc=RPCException("Blockhash not found"))
    ledger = RpcLedger("http://localhost:8899", client=client)
    with pytest.raises(SubmissionError, match="Blockhash not found"):
        await ledger.submit_and_confirm([_ix(owner)], [owner])
    client.confirm_transaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_reads_unwrap_rpc_values():
    client = Mock()
    key = Pubkey.new_unique()
    client.get_program_accounts = AsyncMock(return_value=SimpleNamespace(value=[
        SimpleNamespace(pubkey=key, account=SimpleNamespace(data=b"\x01\x02")),
    ]))
    client.get_account_info = AsyncMock(return_value=SimpleNamespace(value=None))
    client.get_balance = AsyncMock(return_value=SimpleNamespace(value=1_500_000_000))
    ledger = RpcLedger("http://localhost:8899", client=client)
    program = Pubkey.new_unique()

    assert await ledger.scan_program_accounts(program, data_size=848) == [(key, b"\x01\x02")]
    assert client.get_program_accounts.await_args.kwargs["filters"] == [848]
    await ledger.scan_program_accounts(program)
    assert client.get_program_accounts.await_args.kwargs["filters"] is None
    assert await ledger.get_account(key) is None
    assert await ledger.get_balance(key) == 1_500_000_000
