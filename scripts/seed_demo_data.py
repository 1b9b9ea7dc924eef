"""Seed idempotent demo data for local/non-production environments."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from app.core.config import get_settings
from app.core.database import close_engine
from app.core.enums import PricingTypeEnum, RoleEnum, ScheduleTypeEnum, UnitTypeEnum
from app.core.persistence import PersistenceBackend, backend_provider
from app.core.security import hash_password
from app.modules.facilities.repository import FacilityRepository
from app.modules.facilities.schemas import BookingRules, FacilityCreate, FacilitySlot
from app.modules.identity.repository import IdentityRepository
from app.modules.identity.schemas import UnitRead

DEMO_PASSWORD = "DemoPass123!"

DEMO_ADMIN_EMAIL = "demo-admin@societyhub.dev"
DEMO_RESIDENT_EMAIL = "demo-resident@societyhub.dev"

DEMO_UNITS = (
    ("A-101", UnitTypeEnum.FLAT, "Block A"),
    ("V-07", UnitTypeEnum.VILLA, None),
)

DEMO_FACILITIES = (
    FacilityCreate(
        name="Clubhouse Hall",
        description="Banquet hall for private functions.",
        pricing_type=PricingTypeEnum.PER_SLOT,
        slots=[
            FacilitySlot(name="Morning", start_time="09:00", end_time="13:00", price=Decimal("2500")),
            FacilitySlot(name="Evening", start_time="17:00", end_time="22:00", price=Decimal("4000")),
        ],
        capacity=150,
        gst_applicable=True,
        gst_rate=Decimal("18"),
        sac_code="997212",
    ),
    FacilityCreate(
        name="Tennis Court",
        description="Floodlit synthetic court.",
        pricing_type=PricingTypeEnum.HOURLY,
        hourly_rate=Decimal("300"),
        open_time="06:00",
        close_time="22:00",
        booking_rules=BookingRules(
            schedule_type=ScheduleTypeEnum.SPLIT,
            morning_start="06:00",
            morning_end="10:00",
            evening_start="16:00",
            evening_end="22:00",
            max_hours=2,
        ),
        capacity=4,
    ),
    FacilityCreate(
        name="Guest Suite",
        description="Furnished suite for visiting guests, check-in 12:00, check-out 11:00.",
        pricing_type=PricingTypeEnum.PER_DAY,
        hourly_rate=Decimal("1800"),
        per_person_applicable=True,
        capacity=3,
        gst_applicable=True,
    ),
)


@dataclass(slots=True)
class SeedStats:
    units_created: int = 0
    users_created: int = 0
    facilities_created: int = 0


async def _ensure_units(repository: IdentityRepository) -> tuple[dict[str, UnitRead], int]:
    units = {}
    created = 0
    for unit_number, unit_type, block_name in DEMO_UNITS:
        unit = await repository.get_unit_by_number(unit_number)
        if unit is None:
            unit = await repository.create_unit(unit_number, unit_type, block_name)
            created += 1
        units[unit_number] = unit
    return units, created


async def _ensure_user(
    repository: IdentityRepository,
    *,
    email: str,
    full_name: str,
    role: RoleEnum,
    unit_id: UUID | None,
) -> bool:
    if await repository.get_user_by_email(email) is not None:
        return False
    await repository.create_user(
        email=email,
        full_name=full_name,
        password_hash=hash_password(DEMO_PASSWORD),
        role=role,
        unit_id=unit_id,
    )
    return True


async def _ensure_facilities(repository: FacilityRepository) -> int:
    existing = {facility.name for facility in await repository.list_facilities(include_inactive=True)}
    created = 0
    for payload in DEMO_FACILITIES:
        if payload.name in existing:
            continue
        await repository.create_facility(payload)
        created += 1
    return created


async def _seed(backend: PersistenceBackend) -> SeedStats:
    stats = SeedStats()
    identity = IdentityRepository(backend)

    units, stats.units_created = await _ensure_units(identity)
    resident_unit = units["A-101"]
    admin_created = await _ensure_user(
        identity,
        email=DEMO_ADMIN_EMAIL,
        full_name="Demo Administrator",
        role=RoleEnum.APP_ADMIN,
        unit_id=None,
    )
    resident_created = await _ensure_user(
        identity,
        email=DEMO_RESIDENT_EMAIL,
        full_name="Demo Resident",
        role=RoleEnum.RESIDENT,
        unit_id=resident_unit.id,
    )
    stats.users_created = sum([admin_created, resident_created])
    stats.facilities_created = await _ensure_facilities(FacilityRepository(backend))
    return stats


async def _run_seed(*, allow_production: bool) -> SeedStats:
    settings = get_settings()
    app_env = settings.app_env.strip().lower()
    if app_env in {"production", "prod"} and not allow_production:
        raise RuntimeError(
            "Refusing to seed demo data in production. "
            "Re-run with --allow-production only if you are absolutely sure.",
        )

    async with backend_provider.unit_of_work() as backend:
        return await _seed(backend)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Seed idempotent demo data for SocietyHub (units, admin and resident users, facilities).",
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow seeding even when APP_ENV is production/prod.",
    )
    return parser


def _print_summary(stats: SeedStats) -> None:
    print("Demo seed completed.")
    print(f"- Units created: {stats.units_created}")
    print(f"- Users created: {stats.users_created}")
    print(f"- Facilities created: {stats.facilities_created}")
    print("")
    print("Demo credentials (non-production only):")
    print(f"- admin:    {DEMO_ADMIN_EMAIL} / {DEMO_PASSWORD}")
    print(f"- resident: {DEMO_RESIDENT_EMAIL} / {DEMO_PASSWORD}")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    try:
        stats = asyncio.run(_run_seed(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Demo seed failed: {exc}")
        return 1
    finally:
        asyncio.run(close_engine())

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
