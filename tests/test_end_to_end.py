from decimal import Decimal

import pytest
from solders.pubkey import Pubkey
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

from ob_bot.config import load_settings
from ob_bot.exchange import Side
from ob_bot.main import build_bot

from conftest import PROGRAM_ID, add_market, make_market


async def _no_wait(seconds):
    return None


@pytest.mark.asyncio
async def test_discover_provision_and_trade(monkeypatch, settings, ledger, owner, base_mint, quote_mint):
    monkeypatch.setenv("PROBE_SIZES", "760,848,856")
    cfg = load_settings()

    ledger.add_account(Pubkey.new_unique(), PROGRAM_ID, bytes(760))
    target = add_market(ledger, make_market(base_mint, quote_mint), size=848)
    ledger.add_account(Pubkey.new_unique(), PROGRAM_ID, b"\xff" * 856)

    bot = build_bot(cfg, ledger, owner)
    bot._sleep = _no_wait
    accounts = bot.submitter.accounts
    # base (A) account already exists, quote (B) account does not
    ledger.add_account(accounts.address_for(base_mint), TOKEN_PROGRAM_ID, bytes(165))

    assert await bot.loader.address() == target.address
    market = await bot.loader.load()
    assert market.address == target.address

    buy_sig = await bot.run_phase(Side.BUY, Decimal("0.01"), Decimal("0.01"))
    assert buy_sig is not None
    create_ix, = ledger.submitted[0]
    assert create_ix.program_id == ASSOCIATED_TOKEN_PROGRAM_ID
    assert create_ix.accounts[1].pubkey == accounts.address_for(quote_mint)
    buy_ix, = ledger.submitted[1]
    assert buy_ix.accounts[3].pubkey == accounts.address_for(quote_mint)

    sell_sig = await bot.run_phase(Side.SELL, Decimal("0.01"), Decimal("0.01"))
    assert sell_sig is not None and sell_sig != buy_sig
    assert len(ledger.submitted) == 3
    sell_ix, = ledger.submitted[2]
    assert sell_ix.accounts[3].pubkey == accounts.address_for(base_mint)

    assert ledger.scan_calls == [760, 848, 856]
    assert bot.stats.total_buy == bot.stats.total_sell == 1


@pytest.mark.asyncio
async def test_full_cycles_scan_only_once(settings, ledger, owner, base_mint, quote_mint):
    add_market(ledger, make_market(base_mint, quote_mint), size=856)
    bot = build_bot(settings, ledger, owner)
    bot._sleep = _no_wait

    await bot.run(max_cycles=3)

    assert bot.stats.cycles == 3
    assert bot.stats.total_buy == bot.stats.total_sell == 3
    assert ledger.scan_calls == list(settings.PROBE_SIZES)
