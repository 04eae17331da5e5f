"""Unit tests for loyalty service."""

from decimal import Decimal

import pytest

from backoffice.core.exceptions import InvalidArgumentError, NotFoundError
from backoffice.models import BookingStatus, PaymentStatus
from backoffice.services.loyalty_service import LoyaltyService, LoyaltyTier


@pytest.mark.asyncio
async def test_bonus_for_customer_without_bookings(test_session, factory):
    """Test a customer with no bookings gets no bonus."""
    customer = await factory.user()

    bonus = await LoyaltyService(test_session).calculate_bonus_percentage(customer.id)

    assert bonus.score == 0.0
    assert bonus.tier == LoyaltyTier.BRONZE
    assert bonus.bonus_percentage == 0.0
    assert bonus.reason == "No booking history"


@pytest.mark.asyncio
async def test_bonus_for_unknown_customer_is_no_history(test_session):
    """Test scoring a user id with no rows behaves like no history."""
    bonus = await LoyaltyService(test_session).calculate_bonus_percentage(999)

    assert bonus.booking_count == 0
    assert bonus.bonus_percentage == 0.0


@pytest.mark.asyncio
async def test_gold_customer(test_session, factory):
    """Test three completed, paid bookings put a customer in gold."""
    customer = await factory.customer_with_history(bookings=3, completed=3)

    bonus = await LoyaltyService(test_session).calculate_bonus_percentage(customer.id)

    assert bonus.booking_count == 3
    assert bonus.completed_count == 3
    assert bonus.total_spent == Decimal("3000")
    assert bonus.score == pytest.approx(63.0)
    assert bonus.tier == LoyaltyTier.GOLD
    assert bonus.bonus_percentage == 10.0


@pytest.mark.asyncio
async def test_spend_only_counts_settled_bookings(test_session, factory):
    """Test unpaid and failed payments do not add to total spend."""
    customer = await factory.user()
    await factory.booking(customer, total_amount="400.00", payment_status=PaymentStatus.PAID)
    await factory.booking(customer, total_amount="600.00", payment_status=PaymentStatus.COMPLETED)
    await factory.booking(customer, total_amount="900.00", payment_status=PaymentStatus.FAILED)
    await factory.booking(customer, total_amount="800.00", payment_status=None)

    profile = await LoyaltyService(test_session).get_activity_profile(customer.id)

    assert profile.booking_count == 4
    assert profile.total_spent == Decimal("1000")


@pytest.mark.asyncio
async def test_booking_with_two_payments_counted_once(test_session, factory):
    """Test a booking's amount is counted once however many payments it has."""
    from backoffice.models import Payment

    customer = await factory.user()
    booking = await factory.booking(customer, total_amount="750.00")
    test_session.add(Payment(booking_id=booking.id, amount=Decimal("10.00"), status=PaymentStatus.PAID))
    await test_session.flush()

    profile = await LoyaltyService(test_session).get_activity_profile(customer.id)

    assert profile.total_spent == Decimal("750")


@pytest.mark.asyncio
async def test_cancelled_bookings_count_toward_frequency(test_session, factory):
    """Test every booking counts toward frequency regardless of status."""
    customer = await factory.user()
    await factory.booking(customer, status=BookingStatus.CANCELLED, payment_status=None)
    await factory.booking(customer, status=BookingStatus.PENDING, payment_status=None)

    bonus = await LoyaltyService(test_session).calculate_bonus_percentage(customer.id)

    assert bonus.booking_count == 2
    assert bonus.score == pytest.approx(20.0)
    assert bonus.tier == LoyaltyTier.BRONZE
    assert bonus.bonus_percentage == 2.0


@pytest.mark.asyncio
async def test_gift_card_bonus_for_gold_customer(test_session, factory):
    """Test a gold customer's gift card is the amount plus ten percent."""
    customer = await factory.customer_with_history(bookings=3, completed=3)

    sizing = await LoyaltyService(test_session).calculate_gift_card_bonus(customer.id, 1000)

    assert sizing.booking_amount == Decimal("1000")
    assert sizing.bonus_amount == Decimal("100.00")
    assert sizing.total_gift_card_amount == Decimal("1100.00")
    assert sizing.bonus.tier == LoyaltyTier.GOLD


@pytest.mark.asyncio
async def test_gift_card_bonus_rounds_half_up(test_session, factory):
    """Test bonus amounts are rounded to cents, half up."""
    customer = await factory.user()
    await factory.booking(customer, status=BookingStatus.PENDING, payment_status=None)

    # Bronze: 2% of 0.25 is 0.005
    sizing = await LoyaltyService(test_session).calculate_gift_card_bonus(customer.id, "0.25")

    assert sizing.bonus_amount == Decimal("0.01")
    assert sizing.total_gift_card_amount == Decimal("0.26")


@pytest.mark.asyncio
async def test_gift_card_bonus_no_history_adds_nothing(test_session, factory):
    """Test a customer without bookings gets exactly the booking amount."""
    customer = await factory.user()

    sizing = await LoyaltyService(test_session).calculate_gift_card_bonus(customer.id, "249.99")

    assert sizing.bonus_amount == Decimal("0.00")
    assert sizing.total_gift_card_amount == Decimal("249.99")


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -10, None, "ten"])
async def test_gift_card_bonus_invalid_amount(test_session, factory, amount):
    """Test non-positive or malformed amounts are rejected."""
    customer = await factory.user()

    with pytest.raises(InvalidArgumentError):
        await LoyaltyService(test_session).calculate_gift_card_bonus(customer.id, amount)


@pytest.mark.asyncio
async def test_invalid_customer_id_rejected(test_session):
    """Test a non-positive customer id is rejected before any query."""
    with pytest.raises(InvalidArgumentError):
        await LoyaltyService(test_session).calculate_bonus_percentage(0)


@pytest.mark.asyncio
async def test_activity_details(test_session, factory):
    """Test the activity summary counts bookings and gift cards."""
    customer = await factory.customer_with_history(bookings=2, completed=1)
    await factory.booking(customer, status=BookingStatus.CANCELLED, payment_status=None)
    await factory.gift_card(customer)

    details = await LoyaltyService(test_session).get_activity_details(customer.id)

    assert details.total_bookings == 3
    assert details.completed_bookings == 1
    assert details.cancelled_bookings == 1
    assert details.total_spent == Decimal("2000")
    assert details.gift_cards_received == 1
    assert details.first_booking_date is not None
    assert details.activity_score == details.bonus_info.score


@pytest.mark.asyncio
async def test_activity_details_unknown_user(test_session):
    """Test the activity summary of a missing user raises NotFoundError."""
    with pytest.raises(NotFoundError):
        await LoyaltyService(test_session).get_activity_details(12345)
