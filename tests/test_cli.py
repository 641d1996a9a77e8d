import json

import pytest

import seqarrange.__main__ as cli
from seqarrange import ScheduledObject, ScheduledPlate, SchedulingFailure

SCENE = {
    "printer": {
        "plate": [[0, 0], [25000000, 0], [25000000, 21000000], [0, 21000000]],
        "convex_heights": [0],
        "box_heights": [3000000],
        "extruder_slices": {
            "0": [[[-1000000, -1000000], [1000000, -1000000], [1000000, 1000000], [-1000000, 1000000]]],
            "3000000": [[[-3000000, -2000000], [3000000, -2000000], [3000000, 2000000], [-3000000, 2000000]]],
        },
    },
    "objects": [
        {
            "id": 4,
            "glued_to_next": True,
            "total_height": 2000000,
            "slices": [{"height": 0, "polygon": [[0, 0], [5000000, 0], [5000000, 5000000], [0, 5000000]]}],
        },
        {
            "id": 9,
            "slices": [{"height": 0, "polygon": [[0, 0], [3000000, 0], [3000000, 3000000]]}],
        },
    ],
}


def test_load_scene():
    printer, objects = cli.load_scene(SCENE)

    assert printer.convex_heights == {0}
    assert printer.box_heights == {3000000}
    assert sorted(printer.extruder_slices) == [0, 3000000]
    assert len(printer.plate) == 4
    assert [obj.id for obj in objects] == [4, 9]
    assert objects[0].glued_to_next and not objects[1].glued_to_next
    assert objects[1].pgns_at_height[0][0] == 0
    assert len(objects[1].pgns_at_height[0][1]) == 3


def _write_scene(tmp_path):
    path = tmp_path / "scene.json"
    path.write_text(json.dumps(SCENE), encoding="utf-8")
    return path


def test_main_prints_plates(tmp_path, monkeypatch, capsys):
    calls = []

    def _schedule(config, printer, objects, progress_callback=None):
        calls.append((config.object_group_size, config.optimization_timeout, [obj.id for obj in objects]))
        return [ScheduledPlate([ScheduledObject(4, 100, 200), ScheduledObject(9, 300, 400)])]

    monkeypatch.setattr(cli, "schedule_objects_for_sequential_print", _schedule)
    monkeypatch.setattr(cli, "check_scheduled_objects_for_sequential_conflict", lambda *args: None)

    cli.main([str(_write_scene(tmp_path)), "--group-size", "2", "--timeout", "500", "--check"])

    assert calls == [(2, 500, [4, 9])]
    out = capsys.readouterr().out
    assert "Plate 1:" in out
    assert "  4: (100, 200)" in out
    assert "No conflicts" in out


def test_main_exits_on_failure(tmp_path, monkeypatch):
    def _schedule(config, printer, objects, progress_callback=None):
        raise SchedulingFailure("nothing fits", [4, 9])

    monkeypatch.setattr(cli, "schedule_objects_for_sequential_print", _schedule)

    with pytest.raises(SystemExit) as exc:
        cli.main([str(_write_scene(tmp_path))])

    assert exc.value.code == 1
