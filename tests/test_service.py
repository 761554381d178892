from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from canlog.core.frames import ParserConfig
from canlog.core.matrix import MatrixError, parse_matrix
from canlog.core.service import IngestService
from canlog.core.sources import IngestError


FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


def test_trc_matches_golden():
    service = IngestService()
    result = service.ingest_files([FIXTURES_DIR / "sample.trc"])
    golden = json.loads((FIXTURES_DIR / "sample_trc.golden.json").read_text(encoding="utf-8"))
    assert [frame.to_dict() for frame in result.frames] == golden
    assert result.matrix_source == "default"
    assert result.decoded_count == 3
    assert result.unknown_ids() == ["0x7DF"]


def test_candump_log_is_decoded_with_default_matrix():
    result = IngestService().ingest_files([FIXTURES_DIR / "sample.log"])
    assert result.frame_count == 3
    assert result.frames[0].decoded == {"sigControllerTemp": 40.0, "sigMotorTemp": 40.0}
    assert result.frames[1].decoded is None
    assert result.frames[2].decoded == {"sigCapacitorVoltage": 1.0, "sigSpeed": 40.0}


def test_multiple_sources_keep_order():
    paths = [FIXTURES_DIR / "custom.txt", FIXTURES_DIR / "sample.log"]
    result = IngestService().ingest_files(paths)
    assert [f.id for f in result.frames] == ["0x18265040", "0x14234050", "0x18265040", "0x7DF", "0x600"]
    assert result.frames[1].decoded == {
        "sigBatteryCurrent": 10.0,
        "sigDriveCurrentLimit": 0.0,
        "sigRegenCurrentLimit": 0.0,
    }
    assert result.sources == [str(p) for p in paths]


def test_user_matrix_replaces_default():
    service = IngestService(matrix_path=FIXTURES_DIR / "vehicle.dbc")
    assert service.matrix_source.endswith("vehicle.dbc")
    result = service.ingest_files([FIXTURES_DIR / "sample.trc"])
    assert not result.has_decoded


def test_in_memory_matrix_and_parser_config():
    matrix = parse_matrix('BO_ 1536 Probe: 8 X\n SG_ A : 0|8@1+ (2,0) "" X\n')
    service = IngestService(matrix=matrix, parser_config=ParserConfig(default_format="trc"))
    assert service.matrix_source == "custom"
    frames = service.decode(service.parse_text("1) 1.0 Rx 600 1 15"))
    assert frames[0].decoded == {"A": 42.0}


def test_no_frames_logs_warning(tmp_path: Path, caplog: pytest.LogCaptureFixture):
    empty = tmp_path / "empty.log"
    empty.write_text("nothing to see\n", encoding="utf-8")
    with caplog.at_level(logging.INFO, logger="canlog"):
        result = IngestService().ingest_files([empty])
    assert result.frames == []
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert warnings and warnings[0].getMessage() == "No frames recognized"


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(IngestError):
        IngestService().read_file(tmp_path / "absent.log")


def test_message_log_extension_goes_through_python_can(tmp_path: Path):
    with pytest.raises(IngestError):
        IngestService().read_file(tmp_path / "absent.blf")


@pytest.mark.parametrize("data", ["28 5A", "285A", "28 5a 00"])
def test_decode_single_accepts_spaced_and_packed_hex(data: str):
    frame = IngestService().decode_single("18265040", data)
    assert frame.id == "0x18265040"
    assert frame.data[:2] == ("28", "5A")
    assert frame.decoded == {"sigControllerTemp": 40.0, "sigMotorTemp": 40.0}


def test_decode_single_unknown_id():
    frame = IngestService().decode_single("0x7df", "01 0C")
    assert frame.decoded is None


def test_encode_builds_decodable_frame():
    frame = IngestService().encode("0x600", {"sigCapacitorVoltage": 50.0, "sigSpeed": 60.0})
    assert frame.data == ("00", "00", "01", "F4", "00", "00", "3C", "00")
    assert frame.decoded == {"sigCapacitorVoltage": 50.0, "sigSpeed": 60.0}


def test_encode_unknown_message():
    with pytest.raises(MatrixError):
        IngestService().encode("0x7DF", {})
