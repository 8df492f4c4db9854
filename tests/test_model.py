import csv
import time
from queue import Queue

from cyton_emulator.controller.controller import Controller
from cyton_emulator.devices.emulator import CytonEmulator
from cyton_emulator.model.model import CaptureModel


def _model(make_board, tmp_path, **options):
    board = make_board(open_port=False, **options)
    model = CaptureModel(
        board, n_channels=board.options.num_channels, directory=str(tmp_path)
    )
    updates = []
    model.subscribe(updates.append)
    model.start()
    return board, model, updates


def test_model_decodes_samples_and_logs(make_board, scheduler, tmp_path):
    board, model, updates = _model(make_board, tmp_path)
    scheduler.advance(0.2)
    assert model.wait_open(0)
    assert updates == [{"event": "open"}]

    model.send(b"b")
    scheduler.advance(0.0122)
    samples = [u for u in updates if "channels" in u]
    assert [s["sample_number"] for s in samples] == [0, 1, 2]
    assert len(samples[0]["channels"]) == 8
    assert len(samples[0]["aux"]) == 3

    with model.logger.file_path.open() as f:
        rows = list(csv.reader(f))
    assert rows[0][:3] == ["timestamp_utc", "sample_number", "ch1_uV"]
    assert len(rows[0]) == 2 + 8 + 3
    assert [r[1] for r in rows[1:]] == ["0", "1", "2"]


def test_model_splits_text_responses(make_board, scheduler, tmp_path):
    board, model, updates = _model(make_board, tmp_path, firmware_version="v2")
    scheduler.advance(0.2)
    model.send(b"v")
    model.send(b"<")
    scheduler.advance(0.02)
    responses = [u["response"] for u in updates if "response" in u]
    assert responses[0].startswith("OpenBCI V3 Simulator")
    assert responses[0].endswith("Firmware: v2\n")
    assert {"sync_sent": True} in updates


def test_model_reports_open_error(make_board, scheduler, tmp_path):
    board, model, updates = _model(make_board, tmp_path, serial_port_failure=True)
    scheduler.advance(0.2)
    assert not model.wait_open(0)
    assert updates == [{"error": "SerialException: Serialport not open."}]


def test_model_stop_closes_board(make_board, scheduler, tmp_path):
    board, model, updates = _model(make_board, tmp_path)
    scheduler.advance(0.2)
    model.stop()
    assert not board.is_connected()
    assert updates[-1] == {"event": "close"}
    assert model.send(b"b") is None


def test_model_loop(tmp_path):
    q: "Queue[dict]" = Queue()
    model = CaptureModel(CytonEmulator(), directory=str(tmp_path))
    model.subscribe(q.put)
    model.start()
    assert model.wait_open(2.0)
    model.send(b"b")
    time.sleep(0.3)
    model.stop()
    assert not q.empty()


def test_controller_round_trip(tmp_path):
    ctrl = Controller(log_dir=str(tmp_path))
    assert ctrl.send(b"v") is None
    assert ctrl.start_emulated({"daisy": True, "seed": 1})
    assert ctrl.running
    assert ctrl.send(b"v") == "Success!"
    ctrl.stop()
    assert not ctrl.running

    items = []
    while not ctrl.queue.empty():
        items.append(ctrl.queue.get_nowait())
    assert items[0] == {"event": "open"}
    assert any("Daisy" in i.get("response", "") for i in items)
    assert items[-1] == {"event": "close"}
    assert ctrl.log_path is None
