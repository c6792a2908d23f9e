import pytest
import stripe
from unittest.mock import MagicMock

from courtbook.core.errors import ForbiddenError, InvalidRequestError
from support import add_user, get_user, make_engine


def make_stripe_engine():
    return make_engine(payments_sandbox=False, stripe_api_key="sk_test_123", coin_price_cents=100)


def paid_session(user_id, coins, session_id="cs_test_1", payment_intent="pi_123"):
    return {
        "id": session_id,
        "payment_status": "paid",
        "payment_intent": payment_intent,
        "metadata": {"user_id": str(user_id), "coins": str(coins)},
    }


def test_sandbox_top_up_credits_immediately():
    engine = make_engine(payments_sandbox=True)
    alice = add_user(engine, balance=0)

    result = engine.topups.top_up(alice, 300)

    assert result["ok"] is True
    assert result["handled"] is True
    assert get_user(engine, alice).balance == 300
    topups = list(engine.store.tables.topups.values())
    assert topups[0].gateway_ref.startswith("sandbox-")
    assert topups[0].amount_cents == 300 * engine.settings.coin_price_cents
    assert "Top Up Successful" in engine.notifier.titles_for(alice.user_id)


def test_direct_top_up_disabled_outside_sandbox():
    engine = make_stripe_engine()
    alice = add_user(engine, balance=0)
    with pytest.raises(ForbiddenError):
        engine.topups.top_up(alice, 10)


def test_invalid_coin_amount():
    engine = make_engine()
    alice = add_user(engine)
    with pytest.raises(InvalidRequestError):
        engine.topups.top_up(alice, 0)


def test_create_checkout_session(monkeypatch):
    engine = make_stripe_engine()
    alice = add_user(engine)
    create = MagicMock(return_value=MagicMock(url="https://checkout.stripe.test/cs_1", id="cs_1"))
    monkeypatch.setattr(stripe.checkout.Session, "create", create)

    result = engine.topups.create_checkout_session(alice, 50)

    assert result == {"url": "https://checkout.stripe.test/cs_1", "id": "cs_1"}
    kwargs = create.call_args.kwargs
    assert kwargs["metadata"] == {"user_id": str(alice.user_id), "coins": "50"}
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 5000
    assert "{CHECKOUT_SESSION_ID}" in kwargs["success_url"]


def test_checkout_requires_stripe_key():
    engine = make_engine(payments_sandbox=False, stripe_api_key="")
    alice = add_user(engine)
    with pytest.raises(RuntimeError):
        engine.topups.create_checkout_session(alice, 50)

    engine = make_engine(payments_sandbox=False, stripe_api_key="pk_test_wrong")
    with pytest.raises(RuntimeError):
        engine.topups.create_checkout_session(alice, 50)


def test_finalize_credits_once(monkeypatch):
    engine = make_stripe_engine()
    alice = add_user(engine, balance=10)
    monkeypatch.setattr(
        stripe.checkout.Session, "retrieve", MagicMock(return_value=paid_session(alice.user_id, 40))
    )

    first = engine.topups.finalize_checkout_session("cs_test_1")
    second = engine.topups.finalize_checkout_session("cs_test_1")

    assert first["handled"] is True
    assert first["balance"] == 50
    assert second == {"ok": True, "handled": False, "already_confirmed": True, "balance": 50}
    assert get_user(engine, alice).balance == 50
    assert len(engine.store.tables.topups) == 1


def test_finalize_ignores_unpaid_session(monkeypatch):
    engine = make_stripe_engine()
    alice = add_user(engine, balance=10)
    session = paid_session(alice.user_id, 40)
    session["payment_status"] = "unpaid"
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", MagicMock(return_value=session))

    result = engine.topups.finalize_checkout_session("cs_test_1")

    assert result == {"ok": False, "handled": False}
    assert get_user(engine, alice).balance == 10


def test_finalize_with_bad_metadata(monkeypatch):
    engine = make_stripe_engine()
    session = paid_session(0, 40)
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", MagicMock(return_value=session))

    assert engine.topups.finalize_checkout_session("cs_test_1") == {"ok": False, "handled": False}


def test_top_up_goes_through_the_ledger(monkeypatch):
    engine = make_engine(payments_sandbox=True)
    alice = add_user(engine, balance=5)
    top_up = MagicMock(wraps=engine.ledger.top_up)
    monkeypatch.setattr(engine.ledger, "top_up", top_up)

    result = engine.topups.top_up(alice, 20)

    assert result["balance"] == 25
    assert top_up.call_count == 1
    assert top_up.call_args.args == (alice.user_id, 20)
    assert top_up.call_args.kwargs["tx"] is not None
