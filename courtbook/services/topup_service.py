import logging
import uuid
from typing import Dict

import stripe

from courtbook.core.config import Settings
from courtbook.core.errors import ForbiddenError, InvalidRequestError
from courtbook.models import topup as topup_status
from courtbook.models.actor import Actor
from courtbook.models.topup import TopUp
from courtbook.services.ledger import Ledger

logger = logging.getLogger(__name__)


class TopUpService:
    """Buys coins, either instantly (sandbox) or through Stripe Checkout."""

    def __init__(self, settings: Settings, store, ledger: Ledger, notifier):
        self.settings = settings
        self.store = store
        self.ledger = ledger
        self.notifier = notifier

    def _amount_cents(self, coins: int) -> int:
        if coins <= 0:
            raise InvalidRequestError("Invalid amount")
        return coins * self.settings.coin_price_cents

    def _configure_stripe(self) -> None:
        api_key = self.settings.stripe_api_key
        if not api_key:
            raise RuntimeError("Stripe is not configured. Set STRIPE_API_KEY in .env")
        if not (api_key.startswith("sk_") or api_key.startswith("rk_")):
            raise RuntimeError("Invalid Stripe key (wrong format)")
        stripe.api_key = api_key

    def _record_and_credit(self, user_id: int, coins: int, amount_cents: int, gateway_ref: str, details: dict) -> Dict:
        """Credit coins once per gateway reference."""
        with self.store.transaction() as tx:
            # The user row lock serialises concurrent finalisations for this user.
            user = tx.users.find_for_update(user_id)
            if not user:
                raise InvalidRequestError(f"User {user_id} not found.")
            existing = tx.topups.find_by_gateway_ref_for_update(gateway_ref)
            if existing and existing.status == topup_status.CONFIRMED:
                return {"ok": True, "handled": False, "already_confirmed": True, "balance": user.balance}
            if existing:
                tx.topups.update_status(existing.id, topup_status.CONFIRMED)
                topup_id = existing.id
            else:
                topup_id = tx.topups.create(TopUp(
                    user_id=user_id,
                    coins=coins,
                    amount_cents=amount_cents,
                    currency=self.settings.currency,
                    status=topup_status.CONFIRMED,
                    gateway_ref=gateway_ref,
                    details=details,
                )).id
            user = self.ledger.top_up(user_id, coins, tx=tx)

        logger.info(f"[TOPUP] gateway_ref={gateway_ref} user={user_id} coins={coins} balance={user.balance}")
        self.notifier.notify(user_id, "Top Up Successful", f"{coins} coins were added to your balance.")
        return {"ok": True, "handled": True, "topup_id": topup_id, "balance": user.balance}

    def top_up(self, actor: Actor, coins: int) -> Dict:
        """Immediate top-up. Only available while payments run in sandbox mode."""
        amount_cents = self._amount_cents(coins)
        if not self.settings.payments_sandbox:
            raise ForbiddenError("Direct top-up is disabled; use checkout.")
        gateway_ref = f"sandbox-{uuid.uuid4()}"
        return self._record_and_credit(actor.user_id, coins, amount_cents, gateway_ref, {"mode": "sandbox"})

    def create_checkout_session(self, actor: Actor, coins: int) -> Dict:
        """Create a Stripe Checkout Session and return the URL to redirect the user to."""
        amount_cents = self._amount_cents(coins)
        self._configure_stripe()

        # Stripe fills in the placeholder so the success page can finalise the session.
        success_url = f"{self.settings.checkout_base_url}/topup/success?session_id={'{CHECKOUT_SESSION_ID}'}"
        cancel_url = f"{self.settings.checkout_base_url}/topup/cancelled"

        session = stripe.checkout.Session.create(
            payment_method_types=["card"],
            mode="payment",
            line_items=[{
                "price_data": {
                    "currency": self.settings.currency,
                    "product_data": {"name": f"{coins} court booking coins"},
                    "unit_amount": amount_cents,
                },
                "quantity": 1,
            }],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata={"user_id": str(actor.user_id), "coins": str(coins)},
        )
        return {"url": session.url, "id": session.id}

    def finalize_checkout_session(self, session_id: str) -> Dict:
        """Confirm a Checkout Session after the success redirect and credit the coins.

        Calling it again for the same session never credits twice.
        """
        self._configure_stripe()
        session = stripe.checkout.Session.retrieve(session_id)
        metadata = session.get("metadata", {}) or {}
        if session.get("payment_status") != "paid":
            return {"ok": False, "handled": False}

        user_id = int(metadata.get("user_id", 0))
        coins = int(metadata.get("coins", 0))
        if not user_id or coins <= 0:
            return {"ok": False, "handled": False}
        gateway_ref = str(session.get("payment_intent") or session.get("id"))
        return self._record_and_credit(
            user_id, coins, self._amount_cents(coins), gateway_ref, {"stripe_session": session_id}
        )
