import asyncio

import pytest

from storefront_cart.core.errors import OperationInProgress
from storefront_cart.models.cart import CartStatus

from .conftest import assert_consistent, make_item


async def start_apply(controller, coupon_service, code):
    """Start a coupon apply and wait until it is parked on the coupon service"""
    coupon_service.hold()
    task = asyncio.create_task(controller.apply_coupon(code))
    await coupon_service.started.wait()
    return task


@pytest.mark.asyncio
async def test_cart_is_mutating_while_lookup_outstanding(controller, coupon_service):
    controller.add_item(make_item(quantity=3))

    task = await start_apply(controller, coupon_service, "SAVE10")

    state = controller.state
    assert state.status == CartStatus.MUTATING
    assert state.is_loading is True
    assert state.cart.coupon_codes == []

    coupon_service.release()
    assert await task is True
    assert controller.status == CartStatus.READY
    assert controller.is_loading is False


@pytest.mark.asyncio
async def test_second_apply_is_rejected(controller, coupon_service):
    controller.add_item(make_item(quantity=3))
    task = await start_apply(controller, coupon_service, "SAVE10")

    with pytest.raises(OperationInProgress):
        await controller.apply_coupon("SAVE5")

    coupon_service.release()
    assert await task is True
    assert controller.cart.coupon_codes == ["SAVE10"]
    assert coupon_service.calls == ["SAVE10"]


@pytest.mark.asyncio
async def test_item_mutations_rejected_during_lookup(controller, coupon_service):
    item_id = controller.add_item(make_item(quantity=3))
    task = await start_apply(controller, coupon_service, "SAVE10")

    with pytest.raises(OperationInProgress):
        controller.add_item(make_item("other"))
    with pytest.raises(OperationInProgress):
        controller.update_quantity(item_id, 1)
    with pytest.raises(OperationInProgress):
        controller.remove_item(item_id)

    coupon_service.release()
    assert await task is True
    cart = controller.cart
    assert cart.total_items == 3
    assert_consistent(cart)


@pytest.mark.asyncio
async def test_clear_cart_discards_outstanding_lookup(controller, coupon_service):
    controller.add_item(make_item(quantity=3))
    task = await start_apply(controller, coupon_service, "SAVE10")

    controller.clear_cart()
    assert controller.status == CartStatus.EMPTY

    coupon_service.release()
    assert await task is False
    assert controller.cart is None
    assert controller.state.error is None


@pytest.mark.asyncio
async def test_remove_coupon_discards_outstanding_lookup(controller, coupon_service):
    controller.add_item(make_item(quantity=3))
    task = await start_apply(controller, coupon_service, "SAVE10")

    controller.remove_coupon("SAVE10")

    coupon_service.release()
    assert await task is False
    assert controller.cart.coupon_codes == []
    assert controller.cart.discount_amount == 0
    assert controller.status == CartStatus.READY


@pytest.mark.asyncio
async def test_stale_result_does_not_land_on_new_cart(controller, coupon_service):
    controller.add_item(make_item(quantity=3))
    task = await start_apply(controller, coupon_service, "SAVE10")

    controller.clear_cart()
    controller.add_item(make_item("fresh", quantity=1))

    coupon_service.release()
    assert await task is False
    assert controller.cart.coupon_codes == []
    assert [item.product_id for item in controller.cart.items] == ["fresh"]


@pytest.mark.asyncio
async def test_new_apply_after_supersede_is_not_clobbered(controller, coupon_service):
    controller.add_item(make_item(quantity=3))
    stale = await start_apply(controller, coupon_service, "SAVE10")
    controller.remove_coupon("SAVE10")

    coupon_service.started.clear()
    fresh = asyncio.create_task(controller.apply_coupon("SAVE5"))
    await coupon_service.started.wait()
    assert controller.is_loading is True

    coupon_service.release()
    assert await stale is False
    assert await fresh is True
    assert controller.cart.coupon_codes == ["SAVE5"]
    assert controller.is_loading is False


@pytest.mark.asyncio
async def test_sequence_increases_monotonically(controller, coupon_service):
    seen = [controller.sequence]
    item_id = controller.add_item(make_item(quantity=1))
    seen.append(controller.sequence)
    controller.update_quantity(item_id, 2)
    seen.append(controller.sequence)
    await controller.apply_coupon("SAVE10")
    seen.append(controller.sequence)
    controller.clear_cart()
    seen.append(controller.sequence)

    assert seen == sorted(set(seen))
