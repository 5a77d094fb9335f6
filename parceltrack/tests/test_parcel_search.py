"""
Tests for parcel search, fixed views and group-by counts.
"""

from decimal import Decimal

import pytest

from parceltrack.app.core.exceptions import BadRequestError, ResourceNotFoundError
from parceltrack.app.models.parcel_enums import ParcelStatus, ParcelPriority
from parceltrack.app.schemas.parcel import ParcelSearchCriteria, ParcelUpdate
from parceltrack.app.services.parcel_lifecycle import ParcelLifecycleService
from parceltrack.app.services.parcel_search import ParcelSearchService


@pytest.fixture
async def parcels(db_session, make_parcel, directory):
    """
    Five parcels:
        casa_urgent    URGENT,  Casablanca, Amine / North, IN_TRANSIT
        casa_normal    NORMAL,  Casablanca, unassigned,     CREATED
        rabat_express  EXPRESS, Rabat,      Sara / North,   DELIVERED
        fes_urgent     URGENT,  Fes,        unassigned,     CREATED (other sender)
        tanger_normal  NORMAL,  Tanger,     Amine / South,  COLLECTED
    """
    async def make(priority, city, weight, sender=directory.sender, **update):
        parcel = await make_parcel(
            priority=priority, destination_city=city, weight=Decimal(weight), sender_client_id=sender
        )
        if update:
            parcel = await ParcelLifecycleService.update(db_session, parcel.id, ParcelUpdate(**update))
        return parcel

    return {
        "casa_urgent": await make(
            ParcelPriority.URGENT, "Casablanca", "4.00",
            delivery_person_id=directory.amine, zone_id=directory.zone_north, status=ParcelStatus.IN_TRANSIT,
        ),
        "casa_normal": await make(ParcelPriority.NORMAL, "Casablanca", "1.00"),
        "rabat_express": await make(
            ParcelPriority.EXPRESS, "Rabat", "2.50",
            delivery_person_id=directory.sara, zone_id=directory.zone_north, status=ParcelStatus.DELIVERED,
        ),
        "fes_urgent": await make(ParcelPriority.URGENT, "Fes", "7.25", sender=directory.other_sender),
        "tanger_normal": await make(
            ParcelPriority.NORMAL, "Tanger", "3.10",
            delivery_person_id=directory.amine, zone_id=directory.zone_south, status=ParcelStatus.COLLECTED,
        ),
    }


def _ids(views):
    return {view.id for view in views}


@pytest.mark.asyncio
async def test_empty_criteria_matches_unfiltered_listing(db_session, parcels):
    searched = await ParcelSearchService.search(db_session, ParcelSearchCriteria(), page=1, size=100)
    listed = await ParcelLifecycleService.list_page(db_session, page=1, size=100)

    assert searched.total == listed.total == 5
    assert [p.id for p in searched.parcels] == [p.id for p in listed.parcels]


@pytest.mark.asyncio
async def test_city_filter_is_case_insensitive_substring(db_session, parcels):
    result = await ParcelSearchService.search(db_session, ParcelSearchCriteria(destination_city="CASA"))

    assert _ids(result.parcels) == {parcels["casa_urgent"].id, parcels["casa_normal"].id}


@pytest.mark.asyncio
async def test_blank_city_imposes_no_constraint(db_session, parcels):
    result = await ParcelSearchService.search(db_session, ParcelSearchCriteria(destination_city="   "))

    assert result.total == 5


@pytest.mark.asyncio
async def test_filters_combine_with_and(db_session, parcels, directory):
    criteria = ParcelSearchCriteria(
        priority=ParcelPriority.URGENT,
        delivery_person_id=directory.amine,
        zone_id=directory.zone_north,
    )

    result = await ParcelSearchService.search(db_session, criteria)

    assert _ids(result.parcels) == {parcels["casa_urgent"].id}
    for parcel in result.parcels:
        assert parcel.priority == ParcelPriority.URGENT
        assert parcel.delivery_person_id == directory.amine
        assert parcel.zone_id == directory.zone_north


@pytest.mark.asyncio
async def test_unassigned_only_with_delivery_person_is_empty_not_error(db_session, parcels, directory):
    unassigned = await ParcelSearchService.search(db_session, ParcelSearchCriteria(unassigned_only=True))
    assert _ids(unassigned.parcels) == {parcels["casa_normal"].id, parcels["fes_urgent"].id}

    contradictory = await ParcelSearchService.search(
        db_session, ParcelSearchCriteria(unassigned_only=True, delivery_person_id=directory.amine)
    )
    assert contradictory.total == 0
    assert contradictory.parcels == []


@pytest.mark.asyncio
async def test_pages_partition_the_result_set(db_session, parcels):
    seen = []
    for page in (1, 2, 3):
        result = await ParcelSearchService.search(db_session, ParcelSearchCriteria(), page=page, size=2)
        assert result.total == 5
        assert result.total_pages == 3
        seen.extend(p.id for p in result.parcels)

    assert len(seen) == 5
    assert set(seen) == {p.id for p in parcels.values()}

    beyond = await ParcelSearchService.search(db_session, ParcelSearchCriteria(), page=4, size=2)
    assert beyond.parcels == []


@pytest.mark.asyncio
async def test_sort_by_weight(db_session, parcels):
    result = await ParcelSearchService.search(db_session, ParcelSearchCriteria(), sort="weight,asc")

    weights = [p.weight for p in result.parcels]
    assert weights == sorted(weights)
    assert result.parcels[0].id == parcels["casa_normal"].id


@pytest.mark.asyncio
async def test_invalid_sort_and_paging_are_bad_requests(db_session, parcels):
    with pytest.raises(BadRequestError):
        await ParcelSearchService.search(db_session, ParcelSearchCriteria(), sort="password,asc")
    with pytest.raises(BadRequestError):
        await ParcelSearchService.search(db_session, ParcelSearchCriteria(), sort="weight,sideways")
    with pytest.raises(BadRequestError):
        await ParcelSearchService.search(db_session, ParcelSearchCriteria(), page=0)
    with pytest.raises(BadRequestError):
        await ParcelSearchService.search(db_session, ParcelSearchCriteria(), size=1000)
    with pytest.raises(BadRequestError):
        await ParcelSearchService.search(db_session, ParcelSearchCriteria(), size=0)


@pytest.mark.asyncio
async def test_high_priority_pending_excludes_delivered_and_normal(db_session, parcels):
    result = await ParcelSearchService.find_high_priority_pending(db_session)

    assert _ids(result) == {parcels["casa_urgent"].id, parcels["fes_urgent"].id}


@pytest.mark.asyncio
async def test_single_criterion_views(db_session, parcels, directory):
    assert _ids(await ParcelSearchService.find_by_status(db_session, ParcelStatus.CREATED)) == {
        parcels["casa_normal"].id, parcels["fes_urgent"].id
    }
    assert _ids(await ParcelSearchService.find_by_priority(db_session, ParcelPriority.EXPRESS)) == {
        parcels["rabat_express"].id
    }
    assert _ids(await ParcelSearchService.find_by_city(db_session, "tang")) == {parcels["tanger_normal"].id}
    assert _ids(await ParcelSearchService.find_by_zone(db_session, directory.zone_south)) == {
        parcels["tanger_normal"].id
    }
    assert _ids(await ParcelSearchService.find_by_delivery_person(db_session, directory.amine)) == {
        parcels["casa_urgent"].id, parcels["tanger_normal"].id
    }
    assert _ids(await ParcelSearchService.find_by_sender(db_session, directory.other_sender)) == {
        parcels["fes_urgent"].id
    }
    assert len(await ParcelSearchService.find_by_recipient(db_session, directory.recipient)) == 5


@pytest.mark.asyncio
async def test_views_check_referenced_entity_exists(db_session, parcels):
    with pytest.raises(ResourceNotFoundError):
        await ParcelSearchService.find_by_zone(db_session, "nowhere")
    with pytest.raises(ResourceNotFoundError):
        await ParcelSearchService.find_by_sender(db_session, "nobody")
    with pytest.raises(ResourceNotFoundError):
        await ParcelSearchService.find_by_recipient(db_session, "nobody")
    with pytest.raises(ResourceNotFoundError):
        await ParcelSearchService.find_by_delivery_person(db_session, "nobody")


@pytest.mark.asyncio
async def test_sender_progress_views(db_session, parcels, directory):
    in_progress = await ParcelSearchService.find_in_progress_by_sender(db_session, directory.sender)
    delivered = await ParcelSearchService.find_delivered_by_sender(db_session, directory.sender)

    assert _ids(in_progress) == {parcels["casa_urgent"].id, parcels["tanger_normal"].id}
    assert _ids(delivered) == {parcels["rabat_express"].id}


@pytest.mark.asyncio
async def test_group_by_status_and_priority_include_every_key(db_session, parcels):
    by_status = await ParcelSearchService.group_by_status(db_session)
    by_priority = await ParcelSearchService.group_by_priority(db_session)

    assert by_status == {"CREATED": 2, "COLLECTED": 1, "IN_STOCK": 0, "IN_TRANSIT": 1, "DELIVERED": 1}
    assert by_priority == {"NORMAL": 2, "URGENT": 2, "EXPRESS": 1}


@pytest.mark.asyncio
async def test_group_by_zone_and_city(db_session, parcels):
    assert await ParcelSearchService.group_by_zone(db_session) == {"North": 2, "South": 1, "Unassigned": 2}
    assert await ParcelSearchService.group_by_city(db_session) == {
        "Casablanca": 2, "Rabat": 1, "Fes": 1, "Tanger": 1
    }
    assert await ParcelSearchService.count_all(db_session) == 5


@pytest.mark.asyncio
async def test_group_by_status_on_empty_store(db_session, directory):
    by_status = await ParcelSearchService.group_by_status(db_session)

    assert set(by_status) == {status.value for status in ParcelStatus}
    assert sum(by_status.values()) == 0
