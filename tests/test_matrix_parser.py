from __future__ import annotations

from pathlib import Path

import pytest

from canlog.core.matrix import CanMatrix, MatrixError, load_default_matrix, load_matrix_file, parse_matrix
from canlog.core.matrix.parser import _ScanState, _step, parse_signal_line


FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


def test_parse_fixture_catalog():
    matrix = load_matrix_file(FIXTURES_DIR / "vehicle.dbc")
    assert sorted(matrix) == ["256", "419361045"]

    engine = matrix["256"]
    assert engine.name == "EngineData"
    assert engine.dlc == 8
    assert list(engine.signals) == ["EngineSpeed", "CoolantTemp", "ThrottlePos"]

    speed = engine.signals["EngineSpeed"]
    assert speed.start_bit == 0
    assert speed.length == 16
    assert speed.is_little_endian is True
    assert speed.is_signed is False
    assert speed.scale == 0.25
    assert speed.maximum == 16383.75
    assert speed.unit == "rpm"

    coolant = engine.signals["CoolantTemp"]
    assert coolant.is_signed is True
    assert coolant.offset == -40.0


def test_missing_range_defaults_to_zero():
    sig = parse_signal_line(' SG_ CoolantTemp : 16|8@1- (1,-40) "degC" GW')
    assert sig is not None
    assert sig.minimum == 0.0
    assert sig.maximum == 0.0


def test_extended_flag_is_stripped_from_ids():
    matrix = load_matrix_file(FIXTURES_DIR / "vehicle.dbc")
    gateway = matrix.message_for("0x18FEF115")
    assert gateway is not None
    assert gateway.name == "GatewayStatus"


def test_multiplexed_signal_lines_are_skipped():
    matrix = load_matrix_file(FIXTURES_DIR / "vehicle.dbc")
    assert list(matrix["419361045"].signals) == ["Counter"]


def test_signal_before_any_message_is_ignored():
    text = '\n'.join(
        [
            ' SG_ Orphan : 0|8@1+ (1,0) [0|255] "" X',
            "BO_ 16 First: 2 X",
            ' SG_ A : 0|8@1+ (1,0) [0|255] "" X',
        ]
    )
    matrix = parse_matrix(text)
    assert list(matrix) == ["16"]
    assert list(matrix["16"].signals) == ["A"]


def test_signals_attach_to_latest_message():
    text = "\n".join(
        [
            "BO_ 1 One: 8 X",
            ' SG_ A : 0|8@1+ (1,0) "" X',
            "BO_ 2 Two: 4 X",
            ' SG_ B : 8|8@0- (0.5,1) [-10|10] "V" X',
        ]
    )
    matrix = parse_matrix(text)
    assert list(matrix["1"].signals) == ["A"]
    assert list(matrix["2"].signals) == ["B"]
    assert matrix["2"].dlc == 4


def test_duplicate_signal_name_last_wins():
    text = "\n".join(
        [
            "BO_ 1 One: 8 X",
            ' SG_ A : 0|8@1+ (1,0) "" X',
            ' SG_ A : 8|4@1+ (2,0) "" X',
        ]
    )
    sig = parse_matrix(text)["1"].signals["A"]
    assert sig.start_bit == 8
    assert sig.length == 4
    assert sig.scale == 2.0


def test_hex_identifier_and_exponent_numbers():
    text = "BO_ 0x1A0 Hexed: 8 X\n SG_ Tiny : 0|8@1+ (1e-3,-2.5E1) [-1e2|1e2] \"A\" X\n"
    matrix = parse_matrix(text)
    sig = matrix["416"].signals["Tiny"]
    assert sig.scale == 0.001
    assert sig.offset == -25.0
    assert sig.minimum == -100.0


@pytest.mark.parametrize(
    "line",
    [
        ' SG_ Bad : 0|0@1+ (1,0) "" X',  # zero length
        ' SG_ Bad : 0|8@2+ (1,0) "" X',  # unknown byte order
        " SG_ Bad : 0|8@1+ (1,0) [0|1] X",  # unit missing
        ' SG_ Bad : 0|8@1+ [0|1] "" X',  # scale/offset missing
    ],
)
def test_malformed_signal_lines_are_rejected(line: str):
    assert parse_signal_line(line) is None


def test_garbage_never_raises():
    matrix = parse_matrix("\x00\x01 BO_ nope\r\nBO_ x y: z\n\n;;;\n" * 50)
    assert len(matrix) == 0


def test_matrix_is_read_only():
    matrix = parse_matrix('BO_ 1 One: 8 X\n SG_ A : 0|8@1+ (1,0) "" X\n')
    with pytest.raises(TypeError):
        matrix["2"] = matrix["1"]  # type: ignore[index]
    with pytest.raises(TypeError):
        matrix["1"].signals["B"] = matrix["1"].signals["A"]  # type: ignore[index]


def test_key_for_converts_hex_ids():
    assert CanMatrix.key_for("0x600") == "1536"
    assert CanMatrix.key_for("0X1827FF81") == "405274497"
    assert CanMatrix.key_for("7df") == "2015"
    assert CanMatrix.key_for("0xZZ") is None
    assert CanMatrix.key_for("") is None


def test_default_matrix_is_loaded_once():
    first = load_default_matrix()
    assert load_default_matrix() is first
    assert len(first) == 12
    assert first["405274497"].name == "MCU_IPC_Status"
    odometer = first["405274497"].signals["sigOdometer"]
    assert (odometer.start_bit, odometer.length, odometer.scale) == (32, 32, 0.1)
    assert odometer.is_little_endian is False


def test_missing_file_raises_matrix_error(tmp_path: Path):
    with pytest.raises(MatrixError):
        load_matrix_file(tmp_path / "absent.dbc")


def test_signal_lines_do_not_touch_earlier_states():
    start = _step(_ScanState(messages={}), "BO_ 1 One: 8 X")
    after = _step(start, ' SG_ A : 0|8@1+ (1,0) "" X')
    assert start.messages["1"].signals == {}
    assert list(after.messages["1"].signals) == ["A"]
