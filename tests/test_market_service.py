"""
Tests for the market service flows (listing, investing, resale, portfolio)
against a fake contract client and a temporary metadata store.
"""

from __future__ import annotations

import asyncio
import threading
from decimal import Decimal

import pytest
from stellar_sdk import Keypair

from backend_stellark.core.exceptions import InvalidAddress, InvalidPurchase, SigningError, SimulationError
from backend_stellark.database import ResaleListing
from backend_stellark.ledger import CompanyOnChainInfo
from backend_stellark.session import WalletSession

XLM_TOKEN = "CDLZFC3SYJYDZT7K67VZ75HPJVIEUVNIXF47ZG2FB2RMQQVU2HHGCYSC"
CONTRACT_A = "C" + "A" * 55
CONTRACT_B = "C" + "B" * 55


def _info(owner: str, total_supply: int = 1000) -> CompanyOnChainInfo:
    return CompanyOnChainInfo(
        name="Acme",
        symbol="ACME",
        total_supply=total_supply,
        owner=owner,
        equity_percent=10,
        description="",
        token_price=25_000_000,
        target_amount=100_000_000_000,
    )


def _list(market, session, contract_id=CONTRACT_A, **overrides):
    fields = dict(
        name="Acme Robotics",
        symbol="ACME",
        total_supply=1000,
        equity_percent=10,
        description="Warehouse automation",
        token_price=Decimal("2.5"),
        target_amount=Decimal("2500"),
    )
    fields.update(overrides)
    return asyncio.run(market.list_company(session, contract_id, **fields))


def test_list_company_initializes_then_saves(market, session, fake_contract, store):
    saved = _list(market, session, logo_url="https://cdn.example/acme.png")
    assert saved.owner_address == session.address
    assert fake_contract.calls[0][0] == "init_company"
    assert fake_contract.calls[0][1] == CONTRACT_A
    assert fake_contract.calls[0][3]["token_price"] == Decimal("2.5")
    assert store.get_company(CONTRACT_A).logo_url == "https://cdn.example/acme.png"


@pytest.mark.parametrize(
    "overrides",
    [{"total_supply": 0}, {"equity_percent": 0}, {"equity_percent": 101}, {"token_price": Decimal("0")}, {"name": " "}],
)
def test_list_company_validation(market, session, fake_contract, overrides):
    with pytest.raises(ValueError):
        _list(market, session, **overrides)
    assert fake_contract.calls == []


def test_list_company_rejects_bad_contract_id(market, session, fake_contract):
    with pytest.raises(InvalidAddress):
        _list(market, session, contract_id="GBAD")
    assert fake_contract.calls == []


def test_list_company_requires_connected_session(market, signer, fake_contract):
    disconnected = WalletSession(signer, "https://horizon-testnet.stellar.org")
    with pytest.raises(SigningError):
        _list(market, disconnected)
    assert fake_contract.calls == []


def test_market_overview_joins_on_chain_figures(market, store, fake_contract, company_factory):
    owner = Keypair.random().public_key
    store.save_company(company_factory(contract_address=CONTRACT_A, owner_address=owner))
    store.save_company(company_factory(contract_address=CONTRACT_B))
    fake_contract.info[CONTRACT_A] = _info(owner, total_supply=1000)
    fake_contract.balances[(CONTRACT_A, owner)] = 600
    fake_contract.failing.add(CONTRACT_B)

    overviews = {o.metadata.contract_address: o for o in asyncio.run(market.market_overview())}
    a = overviews[CONTRACT_A]
    assert a.tokens_sold == 400
    assert a.available_tokens == 600
    assert a.progress_percent == Decimal(40)
    assert a.funds_raised == Decimal("1000.0")
    assert overviews[CONTRACT_B].on_chain is None


def test_invest_mints_to_buyer(market, session, store, fake_contract, company_factory):
    owner = Keypair.random().public_key
    store.save_company(company_factory(contract_address=CONTRACT_A, owner_address=owner))
    fake_contract.info[CONTRACT_A] = _info(owner, total_supply=100)
    fake_contract.balances[(CONTRACT_A, owner)] = 100

    result = asyncio.run(market.invest(session, CONTRACT_A, 5))
    assert result.tx_hash == "cd" * 32
    assert fake_contract.calls == [("mint", CONTRACT_A, session.address, session.address, 5, XLM_TOKEN)]


@pytest.mark.parametrize("tokens", [0, 101])
def test_invest_rejects_out_of_range_quantity(market, session, store, fake_contract, company_factory, tokens):
    owner = Keypair.random().public_key
    store.save_company(company_factory(contract_address=CONTRACT_A, owner_address=owner))
    fake_contract.info[CONTRACT_A] = _info(owner, total_supply=100)
    fake_contract.balances[(CONTRACT_A, owner)] = 100
    with pytest.raises(InvalidPurchase):
        asyncio.run(market.invest(session, CONTRACT_A, tokens))
    assert fake_contract.calls == []


def test_invest_unknown_company(market, session):
    with pytest.raises(InvalidPurchase, match="not listed"):
        asyncio.run(market.invest(session, CONTRACT_A, 1))


def test_invest_surfaces_on_chain_read_error(market, session, store, fake_contract, company_factory):
    store.save_company(company_factory(contract_address=CONTRACT_A))
    fake_contract.failing.add(CONTRACT_A)
    with pytest.raises(SimulationError, match="HostError: contract not found"):
        asyncio.run(market.invest(session, CONTRACT_A, 1))
    assert fake_contract.calls == []


def test_invest_uninitialized_contract(market, session, store, fake_contract, company_factory):
    store.save_company(company_factory(contract_address=CONTRACT_A))
    with pytest.raises(InvalidPurchase, match="not initialized"):
        asyncio.run(market.invest(session, CONTRACT_A, 1))


def test_store_calls_run_off_the_event_loop(market, store, company_factory, monkeypatch):
    store.save_company(company_factory(contract_address=CONTRACT_A))
    loop_thread = threading.get_ident()
    seen: list[int] = []
    list_companies = store.list_companies

    def recording_list_companies():
        seen.append(threading.get_ident())
        return list_companies()

    monkeypatch.setattr(store, "list_companies", recording_list_companies)
    asyncio.run(market.market_overview())
    asyncio.run(market.portfolio(Keypair.random().public_key))
    assert len(seen) == 2
    assert loop_thread not in seen


def test_list_tokens_for_resale_checks_balance(market, session, store, fake_contract):
    fake_contract.balances[(CONTRACT_A, session.address)] = 5
    with pytest.raises(InvalidPurchase, match="balance is 5"):
        asyncio.run(market.list_tokens_for_resale(session, CONTRACT_A, 6, Decimal("1.5")))

    listing = asyncio.run(market.list_tokens_for_resale(session, CONTRACT_A, 5, Decimal("1.5")))
    assert listing.seller_address == session.address
    assert [l.id for l in market.active_listings(CONTRACT_A)] == [listing.id]
    assert market.active_listings(CONTRACT_B) == []


def _seller_listing(store, tokens: int = 10) -> ResaleListing:
    return store.create_resale_listing(
        ResaleListing(
            id=None,
            contract_address=CONTRACT_A,
            seller_address=Keypair.random().public_key,
            tokens_for_sale=tokens,
            price_per_token=Decimal("1.5"),
        )
    )


def test_buy_from_listing_partial(market, session, store, fake_contract):
    listing = _seller_listing(store, tokens=10)
    outcome = asyncio.run(market.buy_from_listing(session, listing.id, 4))
    assert outcome.remaining == 6 and outcome.is_active
    assert fake_contract.calls == [
        ("transfer_with_payment", CONTRACT_A, session.address, listing.seller_address, 4, Decimal("1.5"), XLM_TOKEN)
    ]
    assert store.get_resale_listing(listing.id).tokens_for_sale == 6


def test_buy_from_listing_exhausts(market, session, store):
    listing = _seller_listing(store, tokens=10)
    outcome = asyncio.run(market.buy_from_listing(session, listing.id, 10))
    assert outcome.is_active is False
    assert market.active_listings() == []


def test_buy_from_listing_oversize_never_submits(market, session, store, fake_contract):
    listing = _seller_listing(store, tokens=10)
    with pytest.raises(InvalidPurchase):
        asyncio.run(market.buy_from_listing(session, listing.id, 11))
    assert fake_contract.calls == []
    assert store.get_resale_listing(listing.id).tokens_for_sale == 10


def test_portfolio_skips_zero_and_failed_reads(market, store, fake_contract, company_factory):
    holder = Keypair.random().public_key
    store.save_company(company_factory(contract_address=CONTRACT_A, token_price=Decimal("2")))
    store.save_company(company_factory(contract_address=CONTRACT_B, token_price=Decimal("3")))
    store.save_company(company_factory(contract_address="C" + "D" * 55))
    fake_contract.balances[(CONTRACT_A, holder)] = 10
    fake_contract.failing.add("C" + "D" * 55)

    portfolio = asyncio.run(market.portfolio(holder))
    assert [h.company.contract_address for h in portfolio.holdings] == [CONTRACT_A]
    assert portfolio.total_value == Decimal(20)
    assert portfolio.total_tokens == 10
