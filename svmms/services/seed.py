"""
Sample data for development databases.

``seed_database`` wipes every table and loads a small, fixed data set: one
admin, three mechanics, four customers with a vehicle each, five parts, four
bookings and three job cards, two of them completed and invoiced.
"""
import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from svmms.auth import hash_password
from svmms.models import (
    Booking,
    BookingStatus,
    Invoice,
    InvoiceStatus,
    JobCard,
    JobCardSparePart,
    JobCardStatus,
    JobCardTask,
    Part,
    RefreshToken,
    User,
    UserRole,
    Vehicle,
)

logger = logging.getLogger(__name__)

ADMIN = ("Admin User", "admin@svmms.com", "1234567890", "123 Admin St, Service Center HQ")

MECHANICS = [
    ("John Mechanic", "mechanic@svmms.com", "9876543210", "456 Workshop Ave, Service Center"),
    ("Sarah Repair", "sarah@svmms.com", "8765432109", "456 Workshop Ave, Service Center"),
    ("Mike Services", "mike@svmms.com", "7654321098", "456 Workshop Ave, Service Center"),
]

CUSTOMERS = [
    ("Jane Customer", "customer@svmms.com", "5555555555", "789 Customer Blvd, City A"),
    ("John Owner", "john@svmms.com", "5555555554", "790 Customer Blvd, City A"),
    ("Alice Driver", "alice@svmms.com", "5555555553", "791 Customer Blvd, City A"),
    ("Bob Vehicle", "bob@svmms.com", "5555555552", "792 Customer Blvd, City B"),
]

PASSWORDS = {
    UserRole.ADMIN: "admin123",
    UserRole.MECHANIC: "mechanic123",
    UserRole.CUSTOMER: "customer123",
}

# name, part number, price, quantity, reorder level, description
PARTS = [
    ("Engine Oil Filter", "EOF-1234", 12.99, 50, 10, "High-quality oil filter for most engines"),
    ("Brake Pad Set", "BP-5678", 45.99, 30, 5, "Front brake pad set for sedans"),
    ("Air Filter", "AF-9012", 18.50, 40, 8, "Standard air filter for passenger cars"),
    ("Spark Plug", "SP-3456", 8.75, 100, 20, "4-pack of premium spark plugs"),
    ("Coolant", "CL-7890", 22.50, 25, 5, "50/50 coolant mix for all vehicles"),
]

# vin, make, model, year, engine type, registration, mileage (one per customer)
VEHICLES = [
    ("1HGBH41JXMN109186", "Toyota", "Camry", 2020, "2.5L I4", "ABC-1001", 42000),
    ("2T1BURHE5JC012345", "Honda", "Civic", 2019, "1.8L I4", "ABC-1002", 51000),
    ("3VWBP29M9YM123456", "Volkswagen", "Jetta", 2021, "1.4L Turbo", "ABC-1003", 18000),
    ("4S3BMAB67M3210987", "Subaru", "Outback", 2018, "2.5L Boxer", "ABC-1004", 67000),
]

# service type, days from today, time, booking status (one per vehicle)
BOOKINGS = [
    ("Oil Change", -5, "09:00", BookingStatus.IN_PROGRESS),
    ("General Checkup", -3, "10:30", BookingStatus.COMPLETED),
    ("Brake Service", -2, "14:00", BookingStatus.COMPLETED),
    ("Engine Repair", 5, "15:30", BookingStatus.PENDING),
]

# Job cards for the first three bookings:
# mechanic index, status, tasks [(name, cost)], parts [(part index, quantity)], paid with
JOBCARDS = [
    (0, JobCardStatus.IN_PROGRESS, [("Diagnostic Scan", 25.0)], [(1, 1)], None),
    (1, JobCardStatus.COMPLETED, [("Diagnostic Scan", 25.0), ("Oil Change", 50.0)], [(0, 2)], None),
    (2, JobCardStatus.COMPLETED, [("Brake Inspection", 40.0), ("Pad Replacement", 60.0)], [(1, 1)], "card"),
]

TABLES = [Invoice, JobCardSparePart, JobCardTask, JobCard, Booking, Vehicle, Part, RefreshToken, User]


async def _clear(db: AsyncSession) -> None:
    for model in TABLES:
        await db.execute(delete(model))


def _users(rows, role: UserRole) -> list[User]:
    password_hash = hash_password(PASSWORDS[role])
    return [
        User(name=name, email=email, password_hash=password_hash, role=role, phone=phone, address=address)
        for name, email, phone, address in rows
    ]


async def _add_all(db: AsyncSession, objects: list) -> list:
    db.add_all(objects)
    await db.flush()
    return objects


async def seed_database(db: AsyncSession) -> dict:
    """
    Replace the contents of the database with the sample data set.

    Everything happens in the session's current transaction; the caller
    commits or rolls back.
    """
    logger.info("Seeding database")
    await _clear(db)

    await _add_all(db, _users([ADMIN], UserRole.ADMIN))
    mechanics = await _add_all(db, _users(MECHANICS, UserRole.MECHANIC))
    customers = await _add_all(db, _users(CUSTOMERS, UserRole.CUSTOMER))

    parts = await _add_all(db, [
        Part(name=name, part_number=number, price=price, quantity=quantity,
             reorder_level=reorder_level, description=description)
        for name, number, price, quantity, reorder_level, description in PARTS
    ])

    vehicles = await _add_all(db, [
        Vehicle(customer_id=customer.id, vin=vin, make=make, model=model, year=year,
                engine_type=engine, registration_number=registration, mileage=mileage)
        for customer, (vin, make, model, year, engine, registration, mileage) in zip(customers, VEHICLES)
    ])

    today = date.today()
    bookings = await _add_all(db, [
        Booking(customer_id=vehicle.customer_id, vehicle_id=vehicle.id, service_type=service,
                booking_date=today + timedelta(days=offset), booking_time=at, status=booking_status,
                notes=f"Service requested for {service}")
        for vehicle, (service, offset, at, booking_status) in zip(vehicles, BOOKINGS)
    ])

    now = datetime.now(timezone.utc)
    invoices = []
    for booking, (mechanic_index, card_status, tasks, used_parts, paid_with) in zip(bookings, JOBCARDS):
        booking.mechanic_id = mechanics[mechanic_index].id
        labor_total = round(sum(cost for _, cost in tasks), 2)
        parts_total = round(sum(parts[index].price * quantity for index, quantity in used_parts), 2)
        completed = card_status == JobCardStatus.COMPLETED

        jobcard = JobCard(
            booking_id=booking.id, customer_id=booking.customer_id, vehicle_id=booking.vehicle_id,
            mechanic_id=booking.mechanic_id, status=card_status, labor_cost=labor_total,
            total_cost=round(labor_total + parts_total, 2), percent_complete=100 if completed else 40,
            started_at=now - timedelta(days=1), completed_at=now if completed else None,
        )
        jobcard.tasks = [JobCardTask(task_name=name, task_cost=cost, status="completed") for name, cost in tasks]
        jobcard.spareparts = [
            JobCardSparePart(part_id=parts[index].id, quantity=quantity, unit_price=parts[index].price,
                             total_price=round(parts[index].price * quantity, 2))
            for index, quantity in used_parts
        ]
        await _add_all(db, [jobcard])

        if completed:
            invoices.append(Invoice(
                jobcard_id=jobcard.id, customer_id=jobcard.customer_id, parts_total=parts_total,
                labor_total=labor_total, grand_total=round(parts_total + labor_total, 2),
                status=InvoiceStatus.PAID if paid_with else InvoiceStatus.UNPAID,
                payment_method=paid_with, paid_at=now if paid_with else None,
            ))
    await _add_all(db, invoices)

    summary = {
        "users": 1 + len(mechanics) + len(customers),
        "parts": len(parts),
        "vehicles": len(vehicles),
        "bookings": len(bookings),
        "jobcards": len(JOBCARDS),
        "invoices": len(invoices),
    }
    logger.info("Seeded %s", summary)
    return summary
