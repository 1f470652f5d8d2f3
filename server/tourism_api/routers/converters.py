"""ORM model to response schema conversion shared by the routers."""

from typing import Optional

from ..models.booking import Booking as BookingModel
from ..models.discount import Discount as DiscountModel
from ..models.flight import Flight as FlightModel
from ..models.property import Property as PropertyModel
from ..models.property import Room as RoomModel
from ..models.review import Review as ReviewModel
from ..models.service import Service as ServiceModel
from ..models.user import SavedPaymentMethod
from ..models.user import User as UserModel
from ..schemas.booking import (
    Booking,
    CheckInInfo,
    CheckOutInfo,
    GuestDetails,
    Guests,
    PaymentInfo,
    PriceBreakdown,
)
from ..schemas.common import Pagination
from ..schemas.discount import Discount
from ..schemas.flight import Aircraft, Airline, AirportLeg, Fare, Flight
from ..schemas.property import CancellationPolicyTerms, OwnerSummary, Property, PropertyAddress, Room
from ..schemas.review import HostResponse, Review, ReviewAuthor
from ..schemas.service import AvailableHours, Service
from ..schemas.user import Address, PaymentMethod, User
from ..services.pricing import PriceBreakdown as PriceQuote
from ..services.query_builder import PageRequest, page_count


def pagination_to_schema(total: int, page: PageRequest) -> Pagination:
    return Pagination(total=total, page=page.page, limit=page.limit, pages=page_count(total, page.limit))


def user_to_schema(user: UserModel) -> User:
    return User(
        id=str(user.id),
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
        role=user.role,
        profile_image=user.profile_image,
        address=Address(
            street=user.street,
            city=user.city,
            state=user.state,
            country=user.country,
            zip_code=user.zip_code,
        ),
        verified=user.verified,
        is_active=user.is_active,
        preferences=user.preferences or {},
        loyalty_points=user.loyalty_points,
        loyalty_tier=user.loyalty_tier,
        completed_bookings=user.completed_bookings,
        created_at=user.created_at,
    )


def payment_method_to_schema(method: SavedPaymentMethod) -> PaymentMethod:
    return PaymentMethod(
        id=str(method.id),
        provider=method.provider,
        brand=method.brand,
        last_four=method.last_four,
        is_default=method.is_default,
        created_at=method.created_at,
    )


def room_to_schema(room: RoomModel) -> Room:
    return Room(
        id=str(room.id),
        room_type=room.room_type,
        description=room.description,
        max_guests=room.max_guests,
        beds=room.beds,
        bathrooms=room.bathrooms,
        price_per_night=room.price_per_night,
        currency=room.currency,
        available=room.available,
        count=room.count,
        amenities=list(room.amenities or []),
        meal_plan=room.meal_plan,
        size_sqm=room.size_sqm,
        bed_type=room.bed_type,
        view_type=room.view_type,
    )


def property_to_schema(property_obj: PropertyModel, distance_km: Optional[float] = None) -> Property:
    rooms = [room_to_schema(room) for room in property_obj.rooms]
    cheapest = min(property_obj.rooms, key=lambda room: room.price_per_night, default=None)
    owner = property_obj.owner

    return Property(
        id=str(property_obj.id),
        name=property_obj.name,
        description=property_obj.description,
        property_type=property_obj.property_type,
        star_rating=property_obj.star_rating,
        address=PropertyAddress(
            street=property_obj.street,
            city=property_obj.city,
            state=property_obj.state,
            country=property_obj.country,
            zip_code=property_obj.zip_code,
            latitude=property_obj.latitude,
            longitude=property_obj.longitude,
        ),
        owner=OwnerSummary(
            id=str(owner.id),
            first_name=owner.first_name,
            last_name=owner.last_name,
            profile_image=owner.profile_image,
            verified=owner.verified,
        ) if owner else None,
        images=list(property_obj.images or []),
        amenities=property_obj.amenities,
        rooms=rooms,
        rating=round(property_obj.rating, 2),
        review_count=property_obj.review_count,
        check_in_time=property_obj.check_in_time,
        check_out_time=property_obj.check_out_time,
        cancellation_policy=CancellationPolicyTerms(
            type=property_obj.cancellation_policy,
            free_cancellation_days=property_obj.free_cancellation_days,
            penalty_percentage=property_obj.cancellation_penalty_percent,
        ),
        house_rules=list(property_obj.house_rules or []),
        is_active=property_obj.is_active,
        featured=property_obj.featured,
        instant_confirmation=property_obj.instant_confirmation,
        features=property_obj.features,
        sustainability_certified=property_obj.sustainability_certified,
        minimum_stay=property_obj.minimum_stay,
        maximum_stay=property_obj.maximum_stay,
        price_from=cheapest.price_per_night if cheapest else None,
        currency=cheapest.currency if cheapest else None,
        distance_km=round(distance_km, 2) if distance_km is not None else None,
        created_at=property_obj.created_at,
    )


def flight_to_schema(flight: FlightModel) -> Flight:
    return Flight(
        id=str(flight.id),
        flight_number=flight.flight_number,
        airline=Airline(code=flight.airline_code, name=flight.airline_name, logo=flight.airline_logo),
        departure=AirportLeg(
            airport_code=flight.departure_airport_code,
            airport_name=flight.departure_airport_name,
            city=flight.departure_city,
            country=flight.departure_country,
            date_time=flight.departure_time,
        ),
        arrival=AirportLeg(
            airport_code=flight.arrival_airport_code,
            airport_name=flight.arrival_airport_name,
            city=flight.arrival_city,
            country=flight.arrival_country,
            date_time=flight.arrival_time,
        ),
        duration_minutes=flight.duration_minutes,
        aircraft=Aircraft(type=flight.aircraft_type, model=flight.aircraft_model),
        stops=flight.stops,
        status=flight.status,
        is_international=flight.is_international,
        currency=flight.currency,
        is_active=flight.is_active,
        fares=[
            Fare(
                cabin_class=fare.cabin_class,
                price=fare.price,
                currency=flight.currency,
                seats_available=fare.seats_available,
                cabin_baggage=fare.cabin_baggage,
                checked_baggage=fare.checked_baggage,
                amenities=list(fare.amenities or []),
            )
            for fare in flight.fares
        ],
    )


def service_to_schema(service: ServiceModel) -> Service:
    return Service(
        id=str(service.id),
        name=service.name,
        description=service.description,
        category=service.category,
        price=service.price,
        currency=service.currency,
        duration_minutes=service.duration_minutes,
        capacity=service.capacity,
        location=service.location,
        images=list(service.images or []),
        available_days=list(service.available_days or []),
        available_hours=AvailableHours(start=service.start_time, end=service.end_time),
        amenities=list(service.amenities or []),
        is_active=service.is_active,
    )


def quote_to_schema(price: PriceQuote) -> PriceBreakdown:
    return PriceBreakdown(
        unit_price=price.unit_price,
        quantity=price.quantity,
        nights=price.nights,
        subtotal=price.subtotal,
        discount_code=price.discount_code,
        discount_type=price.discount.discount_type.value if price.discount else None,
        discount_value=price.discount.value if price.discount else None,
        discount_amount=price.discount_amount,
        tax_rate=price.tax_rate,
        tax_amount=price.tax_amount,
        total=price.total,
        currency=price.currency,
    )


def _resource_name(booking: BookingModel) -> Optional[str]:
    if booking.property is not None:
        return booking.property.name
    if booking.flight is not None:
        return booking.flight.flight_number
    if booking.service is not None:
        return booking.service.name
    return None


def booking_to_schema(booking: BookingModel) -> Booking:
    return Booking(
        id=str(booking.id),
        reservation_number=booking.reservation_number,
        user_id=str(booking.user_id),
        booking_type=booking.booking_type,
        property_id=str(booking.property_id) if booking.property_id else None,
        room_id=str(booking.room_id) if booking.room_id else None,
        flight_id=str(booking.flight_id) if booking.flight_id else None,
        cabin_class=booking.cabin_class,
        service_id=str(booking.service_id) if booking.service_id else None,
        resource_name=_resource_name(booking),
        check_in_date=booking.check_in_date,
        check_out_date=booking.check_out_date,
        nights=booking.nights,
        quantity=booking.quantity,
        guests=Guests(adults=booking.adults, children=booking.children, infants=booking.infants),
        guest_details=GuestDetails(
            first_name=booking.guest_first_name,
            last_name=booking.guest_last_name,
            email=booking.guest_email,
            phone=booking.guest_phone,
        ),
        special_requests=booking.special_requests,
        pricing=PriceBreakdown(
            unit_price=booking.unit_price,
            quantity=booking.quantity,
            nights=booking.nights,
            subtotal=booking.subtotal,
            discount_code=booking.discount_code,
            discount_type=booking.discount_type,
            discount_value=booking.discount_value,
            discount_amount=booking.discount_amount,
            tax_rate=booking.tax_rate,
            tax_amount=booking.tax_amount,
            total=booking.total_amount,
            currency=booking.currency,
        ),
        payment=PaymentInfo(
            status=booking.payment_status,
            method=booking.payment_method,
            reference=booking.payment_reference,
            paid_amount=booking.paid_amount,
            remaining_amount=booking.remaining_amount,
            paid_at=booking.paid_at,
            refund_amount=booking.refund_amount,
            refund_reason=booking.refund_reason,
            refunded_at=booking.refunded_at,
        ),
        check_in=CheckInInfo(status=booking.check_in_status, checked_in_at=booking.checked_in_at),
        check_out=CheckOutInfo(
            status=booking.check_out_status,
            checked_out_at=booking.checked_out_at,
            damage_reported=booking.damage_reported,
            damage_description=booking.damage_description,
        ),
        status=booking.status,
        cancellation_reason=booking.cancellation_reason,
        cancelled_at=booking.cancelled_at,
        created_at=booking.created_at,
    )


def review_to_schema(review: ReviewModel) -> Review:
    author = review.author
    return Review(
        id=str(review.id),
        property_id=str(review.property_id),
        booking_id=str(review.booking_id),
        author=ReviewAuthor(
            id=str(author.id),
            first_name=author.first_name,
            last_name=author.last_name,
            profile_image=author.profile_image,
        ) if author else None,
        rating=review.rating,
        cleanliness=review.cleanliness,
        accuracy=review.accuracy,
        check_in=review.check_in,
        communication=review.communication,
        location=review.location,
        value=review.value,
        comment=review.comment,
        images=list(review.images or []),
        traveler_type=review.traveler_type,
        would_recommend=review.would_recommend,
        verified=review.verified,
        helpful_count=review.helpful_count,
        host_response=HostResponse(
            text=review.host_response,
            date=review.host_response_at,
            responder_id=str(review.host_responder_id) if review.host_responder_id else None,
        ) if review.host_response else None,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )


def discount_to_schema(discount: DiscountModel) -> Discount:
    return Discount(
        id=str(discount.id),
        code=discount.code,
        description=discount.description,
        type=discount.discount_type,
        value=discount.value,
        applies_to=discount.applies_to,
        valid_from=discount.valid_from,
        valid_until=discount.valid_until,
        max_uses=discount.max_uses,
        max_uses_per_user=discount.max_uses_per_user,
        used_count=discount.used_count,
        min_purchase_amount=discount.min_purchase_amount,
        max_discount_amount=discount.max_discount_amount,
        is_active=discount.is_active,
    )
