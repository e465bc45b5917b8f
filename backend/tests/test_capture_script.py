import importlib.util
import json
import logging
import pathlib

from availability_tracker.config import AppSettings
from availability_tracker.providers.sheets import SheetFetchResult
from conftest import FakeSheetSource

SCRIPT_PATH = pathlib.Path(__file__).resolve().parents[1] / "scripts" / "capture_snapshot.py"


def _load_script():
    module_spec = importlib.util.spec_from_file_location("capture_snapshot", SCRIPT_PATH)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


async def test_unconfigured_store_is_logged_not_raised(caplog, sheet_source):
    script = _load_script()
    settings = AppSettings(kv_backend="upstash", kv_rest_api_url=None, kv_rest_api_token=None)

    with caplog.at_level(logging.ERROR, logger="capture_snapshot"):
        exit_code = await script._run(settings, False, source=sheet_source)

    assert exit_code == 1
    assert any("KV_REST_API_URL" in record.getMessage() for record in caplog.records)
    assert sheet_source.calls == 0


async def test_capture_prints_the_stored_summary(capsys, sheet_source):
    script = _load_script()

    exit_code = await script._run(AppSettings(kv_backend="memory"), False, source=sheet_source)

    assert exit_code == 0
    out = capsys.readouterr().out
    printed = json.loads(out[out.index("{"):])
    assert printed["success"] is True
    assert printed["rowCount"] == 3
    assert printed["summary"]["errorCount"] == 1


async def test_dry_run_reports_fetch_failures(caplog):
    script = _load_script()
    source = FakeSheetSource(SheetFetchResult(success=False, error="403", troubleshooting=["share the sheet"]))

    with caplog.at_level(logging.ERROR, logger="capture_snapshot"):
        exit_code = await script._run(AppSettings(kv_backend="memory"), True, source=source)

    assert exit_code == 1
    assert "share the sheet" in caplog.text
