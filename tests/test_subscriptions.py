import asyncio
import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update

from factories import T0, all_rows, day, ledger_rows, make_content, make_creator, make_user, reload
from marketplace.core.clock import as_utc
from marketplace.core.errors import (
    AlreadySubscribed,
    InvalidArgument,
    NotActive,
    NotFound,
    PaymentFailed,
    SubscriptionNotOffered,
    Unauthorized,
)
from marketplace.modules.access.service import has_access
from marketplace.modules.cms.models import PricingModel
from marketplace.modules.creators.service import find_creator_profile
from marketplace.modules.ledger.models import TransactionType
from marketplace.modules.payments.gateway import MockPaymentGateway
from marketplace.modules.subscriptions import service as subscriptions_service
from marketplace.modules.subscriptions.models import Subscription, SubscriptionStatus

def test_subscribe_runs_for_thirty_days_and_credits_creator(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db, subscription_price="10.00")
        fan = await make_user(db)
        sub = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        await reload(db, creator)
        return sub, creator, await ledger_rows(db)

    sub, creator, ledger = run_db(scenario)

    assert sub.status == SubscriptionStatus.ACTIVE
    assert as_utc(sub.start_date) == T0
    assert as_utc(sub.expiration_date) == T0 + timedelta(days=30)
    assert sub.monthly_price == Decimal("10.00")
    assert sub.total_paid == Decimal("10.00")
    assert sub.renewal_count == 0

    assert creator.total_subscribers == 1
    # 10.00 less the 15% platform cut
    assert creator.total_revenue == Decimal("8.50")

    assert [entry.type for entry in ledger] == [TransactionType.SUBSCRIPTION]
    assert ledger[0].amount == Decimal("10.00")

def test_second_subscription_while_entitled_is_rejected(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        await subscriptions_service.create_subscription(db, gateway, fan.id, creator.user_id, "pm_card", now=T0)
        with pytest.raises(AlreadySubscribed):
            await subscriptions_service.create_subscription(
                db, gateway, fan.id, creator.user_id, "pm_card", now=day(5)
            )

    run_db(scenario)
    assert len(gateway.calls) == 1

def test_canceled_subscription_still_blocks_a_new_one(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        sub = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        await subscriptions_service.cancel_subscription(db, sub.id, fan.id, now=day(5))
        with pytest.raises(AlreadySubscribed):
            await subscriptions_service.create_subscription(
                db, gateway, fan.id, creator.user_id, "pm_card", now=day(6)
            )

    run_db(scenario)

def test_new_subscription_after_expiry_replaces_the_stale_row(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        old = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        new = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=day(40)
        )
        await reload(db, old)
        await reload(db, creator)
        return old, new, creator

    old, new, creator = run_db(scenario)

    assert old.status == SubscriptionStatus.EXPIRED
    assert new.status == SubscriptionStatus.ACTIVE
    assert as_utc(new.expiration_date) == day(70)
    assert creator.total_subscribers == 2
    assert creator.total_revenue == Decimal("17.00")

def test_subscribe_to_self_is_rejected(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        with pytest.raises(InvalidArgument):
            await subscriptions_service.create_subscription(
                db, gateway, creator.user_id, creator.user_id, "pm_card", now=T0
            )

    run_db(scenario)

def test_unknown_creator_is_not_found(run_db, gateway):
    async def scenario(db):
        fan = await make_user(db)
        with pytest.raises(NotFound):
            await subscriptions_service.create_subscription(db, gateway, fan.id, uuid.uuid4(), "pm_card", now=T0)

    run_db(scenario)

@pytest.mark.parametrize("enabled, price", [(False, "10.00"), (True, None)])
def test_creator_without_subscription_offer(run_db, gateway, enabled, price):
    async def scenario(db):
        creator = await make_creator(db, subscription_enabled=enabled, subscription_price=price)
        fan = await make_user(db)
        with pytest.raises(SubscriptionNotOffered):
            await subscriptions_service.create_subscription(
                db, gateway, fan.id, creator.user_id, "pm_card", now=T0
            )

    run_db(scenario)
    assert gateway.calls == []

@pytest.mark.parametrize("payment_method_ref", ["pm_fail", "pm_pending", "pm_error"])
def test_unsuccessful_capture_records_nothing(run_db, gateway, payment_method_ref):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        with pytest.raises(PaymentFailed):
            await subscriptions_service.create_subscription(
                db, gateway, fan.id, creator.user_id, payment_method_ref, now=T0
            )
        await reload(db, creator)
        return creator, await all_rows(db, Subscription), await ledger_rows(db)

    creator, subs, ledger = run_db(scenario)

    assert subs == []
    assert ledger == []
    assert creator.total_subscribers == 0
    assert creator.total_revenue == Decimal("0.00")

def test_cancel_keeps_access_until_expiration(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        content = await make_content(db, creator.user_id, PricingModel.SUBSCRIPTION)
        fan = await make_user(db)
        sub = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        canceled = await subscriptions_service.cancel_subscription(db, sub.id, fan.id, now=day(10))
        access = [
            await has_access(db, content, fan.id, now=day(10)),
            await has_access(db, content, fan.id, now=day(30)),
            await has_access(db, content, fan.id, now=day(31)),
        ]
        return canceled, access

    canceled, access = run_db(scenario)

    assert canceled.status == SubscriptionStatus.CANCELED
    assert as_utc(canceled.canceled_at) == day(10)
    assert as_utc(canceled.expiration_date) == day(30)
    assert access == [True, True, False]

def test_cancel_by_someone_else_is_unauthorized(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        stranger = await make_user(db)
        sub = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        with pytest.raises(Unauthorized):
            await subscriptions_service.cancel_subscription(db, sub.id, stranger.id, now=day(1))

    run_db(scenario)

def test_cancel_twice_or_after_expiry_is_not_active(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        other_creator = await make_creator(db)
        sub = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        await subscriptions_service.cancel_subscription(db, sub.id, fan.id, now=day(1))
        with pytest.raises(NotActive):
            await subscriptions_service.cancel_subscription(db, sub.id, fan.id, now=day(2))

        lapsed = await subscriptions_service.create_subscription(
            db, gateway, fan.id, other_creator.user_id, "pm_card", now=T0
        )
        with pytest.raises(NotActive):
            await subscriptions_service.cancel_subscription(db, lapsed.id, fan.id, now=day(31))

    run_db(scenario)

def test_cancel_unknown_subscription_is_not_found(run_db):
    async def scenario(db):
        fan = await make_user(db)
        with pytest.raises(NotFound):
            await subscriptions_service.cancel_subscription(db, uuid.uuid4(), fan.id, now=T0)

    run_db(scenario)

def test_renewal_after_expiry_counts_from_renewal_time(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        sub = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        await subscriptions_service.cancel_subscription(db, sub.id, fan.id, now=day(10))
        renewed = await subscriptions_service.renew_subscription(
            db, gateway, sub.id, fan.id, "pm_card", now=day(45)
        )
        await reload(db, creator)
        return renewed, creator

    renewed, creator = run_db(scenario)

    assert renewed.status == SubscriptionStatus.ACTIVE
    assert as_utc(renewed.expiration_date) == day(75)
    assert renewed.canceled_at is None
    assert renewed.renewal_count == 1
    assert renewed.total_paid == Decimal("20.00")
    # Renewal adds revenue but not a new subscriber
    assert creator.total_subscribers == 1
    assert creator.total_revenue == Decimal("17.00")

def test_early_renewal_does_not_stack_periods(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        sub = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        return await subscriptions_service.renew_subscription(db, gateway, sub.id, fan.id, "pm_card", now=day(20))

    renewed = run_db(scenario)

    assert as_utc(renewed.expiration_date) == day(50)

def test_renewal_keys_are_distinct_per_renewal(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        sub = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        await subscriptions_service.renew_subscription(db, gateway, sub.id, fan.id, "pm_card", now=day(20))
        await subscriptions_service.renew_subscription(db, gateway, sub.id, fan.id, "pm_card", now=day(40))
        return sub

    sub = run_db(scenario)

    keys = [call["idempotency_key"] for call in gateway.calls]
    assert keys[1:] == [f"renewal:{sub.id}:1:pm_card", f"renewal:{sub.id}:2:pm_card"]

def test_failed_renewal_leaves_subscription_unchanged(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        sub = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        with pytest.raises(PaymentFailed):
            await subscriptions_service.renew_subscription(db, gateway, sub.id, fan.id, "pm_fail", now=day(20))
        await reload(db, sub)
        await reload(db, creator)
        return sub, creator, await ledger_rows(db)

    sub, creator, ledger = run_db(scenario)

    assert as_utc(sub.expiration_date) == day(30)
    assert sub.renewal_count == 0
    assert sub.total_paid == Decimal("10.00")
    assert creator.total_revenue == Decimal("8.50")
    assert len(ledger) == 1

def test_renewal_by_someone_else_is_unauthorized(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        stranger = await make_user(db)
        sub = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        with pytest.raises(Unauthorized):
            await subscriptions_service.renew_subscription(db, gateway, sub.id, stranger.id, "pm_card", now=day(1))

    run_db(scenario)

def test_renewing_an_old_row_while_a_newer_one_runs_is_rejected(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        old = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        await subscriptions_service.create_subscription(db, gateway, fan.id, creator.user_id, "pm_card", now=day(40))
        with pytest.raises(AlreadySubscribed):
            await subscriptions_service.renew_subscription(db, gateway, old.id, fan.id, "pm_card", now=day(50))

    run_db(scenario)

def test_effective_status_reads_lapsed_active_rows_as_expired():
    sub = Subscription(status=SubscriptionStatus.ACTIVE, expiration_date=day(30))
    assert subscriptions_service.effective_status(sub, day(30)) == SubscriptionStatus.ACTIVE
    assert subscriptions_service.effective_status(sub, day(31)) == SubscriptionStatus.EXPIRED

    sub.status = SubscriptionStatus.CANCELED
    assert subscriptions_service.effective_status(sub, day(31)) == SubscriptionStatus.CANCELED
    assert subscriptions_service.is_entitled(sub, day(29)) is True
    assert subscriptions_service.is_entitled(sub, day(31)) is False

def test_subscriber_and_creator_listings(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        first = await make_user(db)
        second = await make_user(db)
        await subscriptions_service.create_subscription(db, gateway, first.id, creator.user_id, "pm_card", now=T0)
        await subscriptions_service.create_subscription(db, gateway, second.id, creator.user_id, "pm_card", now=T0)
        return (
            await subscriptions_service.list_subscriptions(db, first.id),
            await subscriptions_service.list_subscribers(db, creator.user_id),
        )

    mine, subscribers = run_db(scenario)

    assert len(mine) == 1
    assert len(subscribers) == 2

class GatedGateway(MockPaymentGateway):
    """Holds every capture until ``parties`` callers have reached it."""

    def __init__(self, parties: int):
        super().__init__()
        self.parties = parties
        self.arrived = 0
        self.release = asyncio.Event()

    async def capture(self, **kwargs):
        self.arrived += 1
        if self.arrived >= self.parties:
            self.release.set()
        await self.release.wait()
        return await super().capture(**kwargs)

def test_concurrent_renewals_settle_once(run_db_file):
    async def scenario(factory):
        async with factory() as db:
            creator = await make_creator(db, subscription_price="10.00")
            fan = await make_user(db)
            sub = await subscriptions_service.create_subscription(
                db, MockPaymentGateway(), fan.id, creator.user_id, "pm_card", now=T0
            )
        creator_id, fan_id, sub_id = creator.user_id, fan.id, sub.id

        # Both requests read renewal count 0 before either captures
        gated = GatedGateway(parties=2)

        async def renew():
            async with factory() as db:
                return await subscriptions_service.renew_subscription(
                    db, gated, sub_id, fan_id, "pm_card", now=day(20)
                )

        results = await asyncio.gather(renew(), renew(), return_exceptions=True)

        async with factory() as db:
            fresh = await db.get(Subscription, sub_id)
            profile = await find_creator_profile(db, creator_id)
            ledger = await ledger_rows(db)
        return results, gated, fresh, profile, ledger

    results, gated, fresh, profile, ledger = run_db_file(scenario)

    assert sorted(type(r).__name__ for r in results) == ["AlreadySubscribed", "Subscription"]
    assert len({call["idempotency_key"] for call in gated.calls}) == 1

    assert fresh.renewal_count == 1
    assert fresh.total_paid == Decimal("20.00")
    assert as_utc(fresh.expiration_date) == day(50)
    # 8.50 for the first month, 8.50 for the single renewal
    assert profile.total_revenue == Decimal("17.00")

    payment_ids = [entry.payment_id for entry in ledger]
    assert len(payment_ids) == 2
    assert len(set(payment_ids)) == 2

def test_stale_renewal_count_is_rejected_without_crediting(run_db, gateway):
    async def scenario(db):
        creator = await make_creator(db)
        fan = await make_user(db)
        sub = await subscriptions_service.create_subscription(
            db, gateway, fan.id, creator.user_id, "pm_card", now=T0
        )
        creator_id, fan_id, sub_id = creator.user_id, fan.id, sub.id
        await subscriptions_service.renew_subscription(db, gateway, sub_id, fan_id, "pm_card", now=day(10))

        # Another request renewed behind this session's back
        await db.execute(
            update(Subscription)
            .where(Subscription.id == sub_id)
            .values(renewal_count=Subscription.renewal_count + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        with pytest.raises(AlreadySubscribed):
            await subscriptions_service.renew_subscription(db, gateway, sub_id, fan_id, "pm_card", now=day(15))

        fresh = await db.get(Subscription, sub_id)
        await db.refresh(fresh)
        profile = await find_creator_profile(db, creator_id)
        await db.refresh(profile)
        return fresh, profile, await ledger_rows(db)

    fresh, profile, ledger = run_db(scenario)

    assert fresh.renewal_count == 2
    assert as_utc(fresh.expiration_date) == day(40)
    assert profile.total_revenue == Decimal("17.00")
    assert len(ledger) == 2
