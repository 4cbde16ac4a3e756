from frames import FrameSchedule


def _raw(animation=True, animations=None):
    return {
        "animation": animation,
        "components": [
            {"folder": "body", "items": [{}]},
            {"folder": "wing", "items": [{"frames": 2}]},
            {"folder": "tail", "items": [{}, {"frames": 3}]},
        ],
        "layers": [
            {"folder": "body"},
            {"folder": "wing"},
            {"folder": "tail", "frames": 4},
        ],
        "animations": animations or [],
    }


def _combination(config, tail=0):
    body, wing, tail_component = config.components
    return (body.items[0], wing.items[0], tail_component.items[tail])


def test_total_frames_is_lcm(make_config):
    config = make_config(_raw())
    schedule = FrameSchedule.build(config, _combination(config))
    assert schedule.layer_frames == [1, 2, 4]
    assert schedule.total_frames == 4
    assert schedule.sub_frame(5, 1) == 1


def test_item_frames_override_layer_frames(make_config):
    config = make_config(_raw())
    schedule = FrameSchedule.build(config, _combination(config, tail=1))
    assert schedule.layer_frames == [1, 2, 3]
    assert schedule.total_frames == 6


def test_single_frame_without_animation(make_config):
    config = make_config(_raw(animation=False))
    schedule = FrameSchedule.build(config, _combination(config))
    assert schedule.total_frames == 1
    assert schedule.file_names(0) == ["01.png", "01-01.png", "01-01.png"]


def test_file_names(make_config):
    config = make_config(_raw())
    schedule = FrameSchedule.build(config, _combination(config, tail=1))
    assert schedule.file_names(4) == ["01.png", "01-01.png", "02-02.png"]


def test_animation_entries_extend_cycle_and_translate(make_config):
    animations = [
        {"translates": [{"folder": "body", "x": 1, "y": -2}]},
        {},
        {"translates": [{"folder": "wing", "x": 3, "y": 0}]},
    ]
    config = make_config(_raw(animations=animations))
    schedule = FrameSchedule.build(config, _combination(config))
    assert schedule.total_frames == 12
    assert schedule.offsets(0) == [(1, -2), (0, 0), (0, 0)]
    assert schedule.offsets(1) == [(0, 0), (0, 0), (0, 0)]
    assert schedule.offsets(5) == [(0, 0), (3, 0), (0, 0)]
    assert schedule.offsets(3) == schedule.offsets(0)


def test_single_animation_entry_does_not_extend_cycle(make_config):
    animations = [{"translates": [{"folder": "tail", "x": 2, "y": 2}]}]
    config = make_config(_raw(animations=animations))
    schedule = FrameSchedule.build(config, _combination(config))
    assert schedule.total_frames == 4
    assert schedule.offsets(3) == [(0, 0), (0, 0), (2, 2)]
