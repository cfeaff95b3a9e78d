from __future__ import annotations

import asyncio
import sys
import tempfile
import unittest
from pathlib import Path

from fastapi import HTTPException

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from clarity_desk.models.intake import ClarityInput
from clarity_desk.models.record import RecordVariant
from clarity_desk.models.settings import AIProvider, AISettings, PromptSettingsUpdateRequest
from clarity_desk.models.status import ConnectivityUpdateRequest
from clarity_desk.routes.dashboard import get_overview, get_vehicle_catalog
from clarity_desk.routes.records import delete_record, get_record, list_registry
from clarity_desk.routes.requests import dismiss_error, retry_last_request, submit_technical
from clarity_desk.routes.settings import update_prompt_settings
from clarity_desk.routes.sync import set_connectivity_state, sync_queue
from clarity_desk.services.ai_client import AIClient
from clarity_desk.services.connectivity import ConnectivityMonitor
from clarity_desk.services.report_gen import ReportGenerator
from clarity_desk.services.request_orchestrator import RequestOrchestrator
from clarity_desk.services.status_tracker import StatusTracker
from clarity_desk.services.sync_coordinator import SyncCoordinator
from clarity_desk.storage.file_manager import FileManager
from clarity_desk.storage.record_store import RecordStore

_FORM = {
    "client": {"name": "Ada Mensah", "telephone": "+233 20 000 0000"},
    "vehicle": {"make": "Toyota", "model": "Aqua", "year": 2014, "batteryType": "Third-Party Reman"},
    "symptoms": "Hybrid warning light after refuelling",
    "diagnosticCodes": "P0A80",
}


class _BrokenGenerator:
    async def generate(self, variant, payload):
        raise RuntimeError("provider error [500]")


class RouteTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.fm = FileManager(Path(self._tmpdir.name) / "data")
        self.fm.update_ai_settings(AISettings(provider=AIProvider.mock))
        self.store = RecordStore(self.fm)
        self.status = StatusTracker()
        self.monitor = ConnectivityMonitor(online=True)
        self.generator = ReportGenerator(AIClient(), self.fm.get_settings)
        self.orchestrator = RequestOrchestrator(self.store, self.status, self.generator, self.monitor)
        self.coordinator = SyncCoordinator(self.store, self.status, self.generator, self.monitor)
        self.monitor.add_listener(self.coordinator.on_connectivity_change)

    def tearDown(self) -> None:
        self._tmpdir.cleanup()

    def _submit(self) -> dict:
        req = ClarityInput.model_validate(_FORM)
        return asyncio.run(submit_technical(req, orchestrator=self.orchestrator))

    def test_submit_online_returns_completed_record(self) -> None:
        result = self._submit()

        self.assertEqual(result["variant"], "technical")
        self.assertEqual(result["record"]["status"], "completed")
        self.assertTrue(result["record"]["report"]["bottom_line"].startswith("[mock]"))
        self.assertEqual(result["record"]["input"]["vehicle"]["year"], "2014")
        self.assertEqual(result["status"]["status"], "IDLE")

    def test_submit_while_busy_is_conflict(self) -> None:
        self.status.try_begin()

        with self.assertRaises(HTTPException) as ctx:
            self._submit()

        self.assertEqual(ctx.exception.status_code, 409)

    def test_failure_then_dismiss_and_retry(self) -> None:
        self.orchestrator.generator = _BrokenGenerator()
        result = self._submit()

        self.assertEqual(result["record"]["status"], "failed")
        self.assertEqual(result["status"]["status"], "ERROR")
        self.assertTrue(result["status"]["can_retry"])
        self.assertEqual(result["status"]["last_request"]["client_name"], "Ada Mensah")

        self.orchestrator.generator = self.generator
        retried = asyncio.run(retry_last_request(orchestrator=self.orchestrator))

        self.assertTrue(retried["retried"])
        self.assertEqual(retried["record"]["status"], "completed")
        self.assertEqual(list_registry(store=self.store)["total"], 2)

        dismissed = dismiss_error(orchestrator=self.orchestrator)
        self.assertFalse(dismissed["dismissed"])

    def test_retry_without_request(self) -> None:
        result = asyncio.run(retry_last_request(orchestrator=self.orchestrator))

        self.assertFalse(result["retried"])

    def test_registry_and_record_lookup(self) -> None:
        record_id = self._submit()["record"]["id"]

        registry = list_registry(store=self.store)
        item = registry["items"][0]
        self.assertEqual(item["id"], record_id)
        self.assertEqual(item["type"], "Technical")
        self.assertEqual(item["title"], "Signal Decoder")
        self.assertEqual(item["name"], "Ada Mensah")
        self.assertRegex(item["date"], r"^\d{2}/\d{2}/\d{4}$")

        found = get_record(RecordVariant.technical, record_id, store=self.store)
        self.assertEqual(found["record"]["id"], record_id)

        with self.assertRaises(HTTPException) as ctx:
            get_record(RecordVariant.strategic, record_id, store=self.store)
        self.assertEqual(ctx.exception.status_code, 404)

        delete_record(RecordVariant.technical, record_id, orchestrator=self.orchestrator)
        with self.assertRaises(HTTPException) as ctx:
            delete_record(RecordVariant.technical, record_id, orchestrator=self.orchestrator)
        self.assertEqual(ctx.exception.status_code, 404)

    def test_offline_queue_then_reconnect_syncs(self) -> None:
        async def go_offline():
            return await set_connectivity_state(
                ConnectivityUpdateRequest(online=False), monitor=self.monitor, fm=self.fm
            )

        state = asyncio.run(go_offline())
        self.assertFalse(state.online)

        queued = self._submit()
        self.assertEqual(queued["record"]["status"], "pending")

        overview = get_overview(store=self.store, status=self.status, monitor=self.monitor, fm=self.fm)
        self.assertTrue(overview["has_pending"])
        self.assertFalse(overview["can_sync"])
        self.assertEqual(overview["counts"]["technical"]["pending"], 1)

        async def reconnect():
            state = await set_connectivity_state(
                ConnectivityUpdateRequest(online=True), monitor=self.monitor, fm=self.fm
            )
            await self.monitor.drain_listeners()
            return state

        self.assertTrue(asyncio.run(reconnect()).online)
        self.assertFalse(self.store.has_pending())
        self.assertEqual(self.store.records(RecordVariant.technical)[0].status.value, "completed")

    def test_manual_sync_reports_summary(self) -> None:
        self.monitor.set_online(False)
        self._submit()
        self.monitor.set_online(True)

        result = asyncio.run(sync_queue(coordinator=self.coordinator))

        self.assertTrue(result["summary"]["ran"])
        self.assertEqual(result["summary"]["completed"], 1)
        self.assertEqual(result["status"]["status"], "IDLE")

    def test_prompt_update_rejects_unknown_placeholder(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            update_prompt_settings(PromptSettingsUpdateRequest(clarity_template="Hi {{nickname}}"), fm=self.fm)
        self.assertEqual(ctx.exception.status_code, 400)

        saved = update_prompt_settings(PromptSettingsUpdateRequest(judgment_template="Weigh {{subject}}"), fm=self.fm)
        self.assertEqual(saved["prompts"]["judgment_template"], "Weigh {{subject}}")

    def test_vehicle_catalog(self) -> None:
        catalog = get_vehicle_catalog()

        self.assertIn("Toyota", catalog["makes"])
        self.assertTrue(catalog["disclaimer"])


if __name__ == "__main__":
    unittest.main()
