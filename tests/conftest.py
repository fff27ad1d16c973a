"""Shared club store fixtures: a populated club and the standard tax rate."""

from dataclasses import dataclass

import pytest_asyncio
from services.club_store_service.models import Club, Member, MembershipStatus, TaxRate
from tests.factories import (
    ClubFactory,
    ClubMembershipFactory,
    MemberFactory,
    TaxRateFactory,
)


@dataclass
class SeededClub:
    club: Club
    members: list[Member]
    lapsed: Member


@pytest_asyncio.fixture
async def wood_club(db_session) -> SeededClub:
    """WOOD club with three active members and one lapsed member."""
    club = ClubFactory.create(code="WOOD", name="Wood Club")
    members = [MemberFactory.create(name=f"Wood Member {i}") for i in range(3)]
    lapsed = MemberFactory.create(name="Lapsed Member")
    db_session.add_all([club, *members, lapsed])
    await db_session.flush()

    db_session.add_all(
        [ClubMembershipFactory.create(member, club) for member in members]
        + [ClubMembershipFactory.create(lapsed, club, status=MembershipStatus.LAPSED)]
    )
    await db_session.commit()
    return SeededClub(club=club, members=members, lapsed=lapsed)


@pytest_asyncio.fixture
async def standard_rate(db_session) -> TaxRate:
    rate = TaxRateFactory.create()
    db_session.add(rate)
    await db_session.commit()
    return rate
