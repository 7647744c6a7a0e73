import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from salon_board_agent.auth import Authenticated
from salon_board_agent.errors import DateParseError, MissingFieldError, NavigationError, PageInteractionError
from salon_board_agent.extractor import RESERVATION_SNAPSHOT_KEY, ReservationExtractor
from salon_board_agent.models import PageState, ReservationQuery, ReservationRecord

from .conftest import RESERVATION_FIELDS, FailingCapture, FakePage, RecordingCapture


def authenticated(make_session, page: FakePage) -> Authenticated:
    return Authenticated(session=make_session(page), page_state=PageState(title="SALON BOARD : TOP", url=page.url))


async def test_extracts_record(settings, make_session):
    page = FakePage(fields=RESERVATION_FIELDS)
    capture = RecordingCapture()
    extractor = ReservationExtractor(authenticated(make_session, page), settings, capture)

    record = await extractor.extract(ReservationQuery("12345"))

    assert record == ReservationRecord(stylist_id="T000123456", date="2024-10-02", start_time="1030", term="90")
    assert capture.keys == [RESERVATION_SNAPSHOT_KEY]


async def test_navigates_to_reservation_url_with_default_timeout(settings, make_session):
    page = FakePage(fields=RESERVATION_FIELDS)

    await ReservationExtractor(authenticated(make_session, page), settings).extract(ReservationQuery("12345"))

    url, timeout = page.goto_calls[0]
    assert url.count("reserveId=12345") == 1
    assert "/instantReserveChange/" in url
    assert timeout is None


async def test_reads_happen_after_navigation(settings, make_session):
    page = FakePage(fields=RESERVATION_FIELDS)

    await ReservationExtractor(authenticated(make_session, page), settings).extract(ReservationQuery("1"))

    goto_index = next(i for i, event in enumerate(page.events) if event.startswith("goto:"))
    reads = [i for i, event in enumerate(page.events) if event.startswith(("read:", "count:"))]
    assert len([e for e in page.events if e.startswith("read:")]) == 4
    assert min(reads) > goto_index


async def test_missing_optional_fields_become_empty(settings, make_session):
    page = FakePage(fields={"dispDateFrom": "2024年1月1日（月）"})

    record = await ReservationExtractor(authenticated(make_session, page), settings).extract(ReservationQuery("9"))

    assert record.model_dump(by_alias=True) == {"stylistId": "", "date": "2024-01-01", "startTime": "", "term": ""}


async def test_strict_fields_raise_missing_field(settings, make_session):
    settings = settings.model_copy(update={"strict_fields": True})
    fields = {key: value for key, value in RESERVATION_FIELDS.items() if key != "rsvTerm"}
    page = FakePage(fields=fields)

    with pytest.raises(MissingFieldError) as excinfo:
        await ReservationExtractor(authenticated(make_session, page), settings).extract(ReservationQuery("9"))

    assert excinfo.value.field == "rsvTerm"


async def test_missing_date_is_fatal(settings, make_session):
    fields = {key: value for key, value in RESERVATION_FIELDS.items() if key != "dispDateFrom"}
    page = FakePage(fields=fields)

    with pytest.raises(DateParseError):
        await ReservationExtractor(authenticated(make_session, page), settings).extract(ReservationQuery("9"))


async def test_unparseable_date_is_fatal(settings, make_session):
    page = FakePage(fields={**RESERVATION_FIELDS, "dispDateFrom": "未定"})

    with pytest.raises(DateParseError):
        await ReservationExtractor(authenticated(make_session, page), settings).extract(ReservationQuery("9"))


async def test_navigation_timeout(settings, make_session):
    page = FakePage(fields=RESERVATION_FIELDS, goto_error=PlaywrightTimeoutError("Timeout 30000ms exceeded."))

    with pytest.raises(NavigationError):
        await ReservationExtractor(authenticated(make_session, page), settings).extract(ReservationQuery("9"))


async def test_capture_failure_is_ignored(settings, make_session):
    page = FakePage(fields=RESERVATION_FIELDS)
    capture = FailingCapture()

    record = await ReservationExtractor(authenticated(make_session, page), settings, capture).extract(
        ReservationQuery("9")
    )

    assert record.date == "2024-10-02"
    assert capture.attempts == 1


async def test_repeated_extraction_reads_fresh_identical_values(settings, make_session):
    page = FakePage(fields=RESERVATION_FIELDS)
    extractor = ReservationExtractor(authenticated(make_session, page), settings)

    first = await extractor.extract(ReservationQuery("12345"))
    second = await extractor.extract(ReservationQuery("12345"))

    assert first.model_dump_json(by_alias=True) == second.model_dump_json(by_alias=True)
    assert len(page.goto_calls) == 2


def test_requires_authenticated_outcome(settings):
    with pytest.raises(TypeError):
        ReservationExtractor(object(), settings)


class BrokenLocatorPage(FakePage):
    def locator(self, selector: str):
        locator = super().locator(selector)

        async def count() -> int:
            raise PlaywrightError("Execution context was destroyed")

        locator.count = count
        return locator


async def test_page_error_while_reading_is_typed(settings, make_session):
    page = BrokenLocatorPage(fields=RESERVATION_FIELDS)

    with pytest.raises(PageInteractionError) as excinfo:
        await ReservationExtractor(authenticated(make_session, page), settings).extract(ReservationQuery("9"))

    assert isinstance(excinfo.value.__cause__, PlaywrightError)
