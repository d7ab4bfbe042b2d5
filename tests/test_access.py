import uuid

from factories import T0, day, make_content, make_creator, make_purchase, make_subscription, make_user
from marketplace.modules.access.service import has_access
from marketplace.modules.cms.models import PricingModel
from marketplace.modules.sales.models import PurchaseStatus
from marketplace.modules.subscriptions.models import SubscriptionStatus

def test_free_content_is_open_to_everyone(run_db):
    async def scenario(db):
        creator = await make_creator(db)
        content = await make_content(db, creator.user_id, PricingModel.FREE, price=None)
        return (
            await has_access(db, content, None),
            await has_access(db, content, uuid.uuid4()),
        )

    assert run_db(scenario) == (True, True)

def test_anonymous_user_cannot_open_paid_content(run_db):
    async def scenario(db):
        creator = await make_creator(db)
        content = await make_content(db, creator.user_id, PricingModel.PURCHASE)
        return await has_access(db, content, None)

    assert run_db(scenario) is False

def test_creator_always_opens_own_content(run_db):
    async def scenario(db):
        creator = await make_creator(db)
        results = []
        for model in (PricingModel.PURCHASE, PricingModel.SUBSCRIPTION, PricingModel.BOTH):
            content = await make_content(db, creator.user_id, model)
            results.append(await has_access(db, content, creator.user_id))
        return results

    assert run_db(scenario) == [True, True, True]

def test_only_completed_purchase_grants_access(run_db):
    async def scenario(db):
        creator = await make_creator(db)
        content = await make_content(db, creator.user_id, PricingModel.PURCHASE)
        buyer = await make_user(db)
        before = await has_access(db, content, buyer.id)
        await make_purchase(db, buyer.id, content, status=PurchaseStatus.PENDING)
        pending = await has_access(db, content, buyer.id)
        await make_purchase(db, buyer.id, content, status=PurchaseStatus.COMPLETED)
        after = await has_access(db, content, buyer.id)
        return before, pending, after

    assert run_db(scenario) == (False, False, True)

def test_active_subscription_grants_access_until_expiration(run_db):
    async def scenario(db):
        creator = await make_creator(db)
        content = await make_content(db, creator.user_id, PricingModel.SUBSCRIPTION)
        fan = await make_user(db)
        await make_subscription(db, fan.id, creator.user_id, start=T0)
        return (
            await has_access(db, content, fan.id, now=day(1)),
            await has_access(db, content, fan.id, now=day(30)),
            await has_access(db, content, fan.id, now=day(31)),
        )

    assert run_db(scenario) == (True, True, False)

def test_canceled_subscription_keeps_access_until_expiration(run_db):
    async def scenario(db):
        creator = await make_creator(db)
        content = await make_content(db, creator.user_id, PricingModel.SUBSCRIPTION)
        fan = await make_user(db)
        await make_subscription(db, fan.id, creator.user_id, start=T0, status=SubscriptionStatus.CANCELED)
        return (
            await has_access(db, content, fan.id, now=day(10)),
            await has_access(db, content, fan.id, now=day(31)),
        )

    assert run_db(scenario) == (True, False)

def test_expired_status_never_grants_access(run_db):
    async def scenario(db):
        creator = await make_creator(db)
        content = await make_content(db, creator.user_id, PricingModel.SUBSCRIPTION)
        fan = await make_user(db)
        await make_subscription(db, fan.id, creator.user_id, start=T0, status=SubscriptionStatus.EXPIRED)
        return await has_access(db, content, fan.id, now=day(1))

    assert run_db(scenario) is False

def test_subscription_does_not_open_purchase_only_content(run_db):
    async def scenario(db):
        creator = await make_creator(db)
        content = await make_content(db, creator.user_id, PricingModel.PURCHASE)
        fan = await make_user(db)
        await make_subscription(db, fan.id, creator.user_id, start=T0)
        return await has_access(db, content, fan.id, now=day(1))

    assert run_db(scenario) is False

def test_purchase_does_not_open_subscription_only_content(run_db):
    async def scenario(db):
        creator = await make_creator(db)
        content = await make_content(db, creator.user_id, PricingModel.SUBSCRIPTION)
        buyer = await make_user(db)
        await make_purchase(db, buyer.id, content)
        return await has_access(db, content, buyer.id)

    assert run_db(scenario) is False

def test_both_model_accepts_either_entitlement(run_db):
    async def scenario(db):
        creator = await make_creator(db)
        content = await make_content(db, creator.user_id, PricingModel.BOTH)
        buyer = await make_user(db)
        fan = await make_user(db)
        await make_purchase(db, buyer.id, content)
        await make_subscription(db, fan.id, creator.user_id, start=T0)
        return (
            await has_access(db, content, buyer.id, now=day(1)),
            await has_access(db, content, fan.id, now=day(1)),
        )

    assert run_db(scenario) == (True, True)

def test_subscription_to_another_creator_does_not_count(run_db):
    async def scenario(db):
        creator = await make_creator(db)
        other = await make_creator(db)
        content = await make_content(db, creator.user_id, PricingModel.SUBSCRIPTION)
        fan = await make_user(db)
        await make_subscription(db, fan.id, other.user_id, start=T0)
        return await has_access(db, content, fan.id, now=day(1))

    assert run_db(scenario) is False
