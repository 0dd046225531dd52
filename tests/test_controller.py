import asyncio
import unittest

from lab_reservations import NetworkError, Reservation, ReservationDraft, ValidationError, ViewController
from lab_reservations.controller import CREATE_FAILED, CREATE_SUCCEEDED, LOAD_ACTIVE_FAILED, LOAD_PAST_FAILED
from lab_reservations.time_format import to_display_string


def _reservation(reservation_id: str, laboratory: str = "Lab 1") -> Reservation:
    return Reservation(
        id=reservation_id,
        email="a@x.com",
        name="A B",
        student_id="123",
        laboratory=laboratory,
        reservation_time="2024-05-01T10:00:00",
    )


VALID_FORM = {
    "email": "a@x.com",
    "name": "A B",
    "studentId": "123",
    "laboratory": "Lab 2",
    "reservationTime": "2024-05-01 14:00",
}


class FakeReservationService:
    def __init__(self) -> None:
        self.active: list[Reservation] = []
        self.past: list[Reservation] = []
        self.calls: list[tuple] = []
        self.fail_with: Exception | None = None
        self.next_id = 42

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def fetch_active(self) -> list[Reservation]:
        self.calls.append(("fetch_active",))
        self._maybe_fail()
        return list(self.active)

    async def fetch_past(self, start_date: str, end_date: str) -> list[Reservation]:
        self.calls.append(("fetch_past", start_date, end_date))
        self._maybe_fail()
        return list(self.past)

    async def create_reservation(self, draft: ReservationDraft) -> Reservation:
        self.calls.append(("create_reservation", draft))
        self._maybe_fail()
        created = Reservation(
            id=str(self.next_id),
            email=draft.email,
            name=draft.name,
            student_id=draft.student_id,
            laboratory=draft.laboratory,
            reservation_time=draft.reservation_time,
        )
        self.next_id += 1
        self.active.append(created)
        return created


class GatedReservationService:
    """Each fetch waits until the test resolves its future."""

    def __init__(self) -> None:
        self.pending: list[asyncio.Future] = []

    async def _wait(self) -> list[Reservation]:
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future

    async def fetch_active(self) -> list[Reservation]:
        return await self._wait()

    async def fetch_past(self, start_date: str, end_date: str) -> list[Reservation]:
        return await self._wait()

    async def create_reservation(self, draft: ReservationDraft) -> Reservation:
        raise AssertionError("not used")


class TestInitialState(unittest.TestCase):
    def test_session_starts_on_current_tab_with_today_range(self) -> None:
        controller = ViewController(FakeReservationService())
        state = controller.state
        self.assertEqual(state.active_tab, "current")
        self.assertEqual(state.reservations, ())
        self.assertFalse(state.loading)
        self.assertIsNone(state.error)
        self.assertEqual(state.date_range.start_date, state.date_range.end_date)
        self.assertTrue(state.date_range.start_date)


class TestTabs(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.service = FakeReservationService()
        self.controller = ViewController(self.service)

    async def test_current_tab_loads_active(self) -> None:
        self.service.active = [_reservation("1"), _reservation("2")]
        await self.controller.select_tab("current")
        self.assertEqual([r.id for r in self.controller.state.reservations], ["1", "2"])
        self.assertFalse(self.controller.state.loading)

    async def test_past_tab_queries_date_range(self) -> None:
        self.controller.set_date_range("2024-05-01", "2024-05-07")
        self.service.past = [_reservation("9")]
        await self.controller.select_tab("past")
        self.assertEqual(self.service.calls, [("fetch_past", "2024-05-01", "2024-05-07")])
        self.assertEqual([r.id for r in self.controller.state.reservations], ["9"])

    async def test_new_tab_makes_no_request(self) -> None:
        await self.controller.select_tab("new")
        self.assertEqual(self.controller.state.active_tab, "new")
        self.assertEqual(self.service.calls, [])

    async def test_switching_tabs_clears_previous_error(self) -> None:
        self.controller.state.error = "old problem"
        await self.controller.select_tab("new")
        self.assertIsNone(self.controller.state.error)

    async def test_unknown_tab_raises(self) -> None:
        with self.assertRaises(ValueError):
            await self.controller.select_tab("archive")


class TestLoading(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.service = FakeReservationService()
        self.controller = ViewController(self.service)

    async def test_failed_active_load_keeps_stale_list(self) -> None:
        self.service.active = [_reservation("1")]
        await self.controller.load_active()
        self.service.fail_with = NetworkError("boom")

        await self.controller.load_active()

        self.assertEqual(self.controller.state.error, LOAD_ACTIVE_FAILED)
        self.assertEqual([r.id for r in self.controller.state.reservations], ["1"])
        self.assertFalse(self.controller.state.loading)

    async def test_failed_past_load_reports_past_message(self) -> None:
        self.service.fail_with = NetworkError("boom", status_code=500)
        await self.controller.load_past()
        self.assertEqual(self.controller.state.error, LOAD_PAST_FAILED)

    async def test_missing_start_date_skips_network(self) -> None:
        self.controller.set_date_range(start_date="", end_date="2024-05-01")
        await self.controller.load_past()
        self.assertEqual(self.service.calls, [])
        self.assertEqual(self.controller.state.error, "Please select both start and end dates")
        self.assertFalse(self.controller.state.loading)

    async def test_next_operation_clears_error(self) -> None:
        self.service.fail_with = NetworkError("boom")
        await self.controller.load_active()
        self.service.fail_with = None
        await self.controller.load_active()
        self.assertIsNone(self.controller.state.error)

    async def test_stale_response_is_dropped(self) -> None:
        service = GatedReservationService()
        controller = ViewController(service)

        first = asyncio.create_task(controller.load_active())
        await asyncio.sleep(0)
        second = asyncio.create_task(controller.load_active())
        await asyncio.sleep(0)
        self.assertTrue(controller.state.loading)

        service.pending[1].set_result([_reservation("new")])
        await second
        self.assertFalse(controller.state.loading)

        service.pending[0].set_result([_reservation("old")])
        await first
        self.assertEqual([r.id for r in controller.state.reservations], ["new"])
        self.assertFalse(controller.state.loading)

    async def test_stale_failure_does_not_set_error(self) -> None:
        service = GatedReservationService()
        controller = ViewController(service)
        controller.set_date_range("2024-05-01", "2024-05-02")

        first = asyncio.create_task(controller.load_past())
        await asyncio.sleep(0)
        second = asyncio.create_task(controller.load_past())
        await asyncio.sleep(0)

        service.pending[1].set_result([_reservation("fresh")])
        await second
        service.pending[0].set_exception(NetworkError("late failure"))
        await first

        self.assertIsNone(controller.state.error)
        self.assertEqual([r.id for r in controller.state.reservations], ["fresh"])


class TestTabSwitchRaces(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.service = GatedReservationService()
        self.controller = ViewController(self.service)
        self.controller.set_date_range("2024-05-01", "2024-05-02")

    async def test_late_past_response_does_not_replace_current_list(self) -> None:
        past = asyncio.create_task(self.controller.select_tab("past"))
        await asyncio.sleep(0)
        current = asyncio.create_task(self.controller.select_tab("current"))
        await asyncio.sleep(0)

        self.service.pending[1].set_result([_reservation("active-1")])
        await current
        self.service.pending[0].set_result([_reservation("past-9")])
        await past

        self.assertEqual(self.controller.state.active_tab, "current")
        self.assertEqual([r.id for r in self.controller.state.reservations], ["active-1"])
        self.assertFalse(self.controller.state.loading)

    async def test_loading_follows_active_tab(self) -> None:
        current = asyncio.create_task(self.controller.select_tab("current"))
        await asyncio.sleep(0)
        self.assertTrue(self.controller.state.loading)

        self.controller.set_date_range("", "")
        await self.controller.select_tab("past")

        self.assertFalse(self.controller.state.loading)
        self.assertEqual(self.controller.state.error, "Please select both start and end dates")

        self.service.pending[0].set_result([_reservation("active-1")])
        await current
        self.assertEqual(self.controller.state.reservations, ())
        self.assertFalse(self.controller.state.loading)
        self.assertEqual(self.controller.state.error, "Please select both start and end dates")

    async def test_late_failure_after_switch_to_new_is_ignored(self) -> None:
        past = asyncio.create_task(self.controller.select_tab("past"))
        await asyncio.sleep(0)
        await self.controller.select_tab("new")
        self.assertFalse(self.controller.state.loading)

        self.service.pending[0].set_exception(NetworkError("late failure"))
        await past

        self.assertIsNone(self.controller.state.error)
        self.assertEqual(self.controller.state.reservations, ())


class TestSubmit(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.service = FakeReservationService()
        self.controller = ViewController(self.service)

    async def test_successful_submit_refreshes_active_list(self) -> None:
        await self.controller.select_tab("new")

        created = await self.controller.submit_reservation(VALID_FORM)

        self.assertIsNotNone(created)
        self.assertEqual(created.id, "42")
        draft = self.service.calls[0][1]
        self.assertEqual(draft.reservation_time, "2024-05-01T14:00:00")
        self.assertEqual(self.service.calls[1], ("fetch_active",))

        state = self.controller.state
        self.assertEqual(state.active_tab, "new")
        self.assertEqual(state.form_fields, {})
        self.assertFalse(state.loading)
        listed = {r.id: r for r in state.reservations}
        self.assertEqual(listed["42"].laboratory, "Lab 2")
        self.assertEqual(to_display_string(listed["42"].reservation_time), "Wed, May 1, 2024, 02:00 PM")

    async def test_success_notice_is_one_shot(self) -> None:
        await self.controller.submit_reservation(VALID_FORM)
        self.assertEqual(self.controller.pop_notice(), CREATE_SUCCEEDED)
        self.assertIsNone(self.controller.pop_notice())

    async def test_service_rejection_message_is_shown_verbatim(self) -> None:
        self.service.fail_with = ValidationError("Slot already booked", status_code=409)

        created = await self.controller.submit_reservation(VALID_FORM)

        self.assertIsNone(created)
        self.assertEqual(self.controller.state.error, "Slot already booked")
        self.assertEqual(self.controller.state.form_fields, VALID_FORM)
        self.assertFalse(self.controller.state.loading)

    async def test_network_failure_uses_fallback_message(self) -> None:
        self.service.fail_with = NetworkError("boom")
        await self.controller.submit_reservation(VALID_FORM)
        self.assertEqual(self.controller.state.error, CREATE_FAILED)
        self.assertEqual(self.controller.state.form_fields["email"], "a@x.com")

    async def test_missing_field_never_reaches_service(self) -> None:
        form = {**VALID_FORM, "studentId": ""}
        created = await self.controller.submit_reservation(form)
        self.assertIsNone(created)
        self.assertEqual(self.service.calls, [])
        self.assertIn("student ID", self.controller.state.error)
        self.assertEqual(self.controller.state.form_fields["name"], "A B")

    async def test_unparsable_time_never_reaches_service(self) -> None:
        await self.controller.submit_reservation({**VALID_FORM, "reservationTime": "soon"})
        self.assertEqual(self.service.calls, [])
        self.assertIn("valid date and time", self.controller.state.error)

    async def test_time_is_normalized_in_configured_zone(self) -> None:
        controller = ViewController(self.service, tz="Europe/Madrid")
        await controller.submit_reservation(VALID_FORM)
        draft = self.service.calls[0][1]
        self.assertEqual(draft.reservation_time, "2024-05-01T12:00:00")


if __name__ == "__main__":
    unittest.main()
