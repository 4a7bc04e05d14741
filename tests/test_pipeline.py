import asyncio

import pytest
from pydantic import ValidationError

from app.agents.storyboard.graph import (
    create_basic_storyboard_nodes,
    create_storyboard_nodes_from_image,
    run_storyboard_from_image,
)
from app.agents.storyboard.prompts import DEFAULT_KEYFRAMES
from app.agents.storyboard.state import RunStatus

IMAGE = "data:image/png;base64,iVBORw0KGgo="

LANTERN_BEATS = [
    "场景1 - 开始: a lantern at dusk",
    "场景2 - 发展: a lantern at dusk",
    "场景3 - 高潮: a lantern at dusk",
    "场景4 - 结尾: a lantern at dusk",
]


def tagged(*descriptions: str) -> str:
    return "\n\n".join(
        f"【KF{i}/4 | 中景 | {i * 2}s】\n画面描述：{d}\n构图参数：平视\n连续性说明：无"
        for i, d in enumerate(descriptions, start=1)
    )


def run_image(generator, recorder, image=IMAGE, **kwargs):
    return asyncio.run(
        create_storyboard_nodes_from_image(image, "a lantern at dusk", 10, 20, recorder, generator, **kwargs)
    )


def test_basic_run_uses_fixed_beats(recorder):
    create_basic_storyboard_nodes("a lantern at dusk", 0, 0, recorder)
    assert recorder.prompts == LANTERN_BEATS
    data = [c[4] for c in recorder.calls]
    assert [d["storyboardIndex"] for d in data] == [1, 2, 3, 4]
    assert all(d["storyboardBasePrompt"] == "a lantern at dusk" for d in data)
    assert all(d["model"] == "nano-banana" and d["ratio"] == "16:9" and d["batchSize"] == 1 for d in data)


def test_basic_run_merges_partial_params(recorder):
    create_basic_storyboard_nodes("x", 0, 0, recorder, {"ratio": "1:1"})
    data = recorder.calls[0][4]
    assert (data["model"], data["ratio"], data["aspectRatio"]) == ("nano-banana", "1:1", 1.0)


def test_basic_run_rejects_malformed_ratio(recorder):
    with pytest.raises(ValidationError):
        create_basic_storyboard_nodes("x", 0, 0, recorder, {"ratio": "wide"})
    assert recorder.calls == []


def test_image_run_uses_model_keyframes(make_generator, recorder):
    generator = make_generator(response=tagged("dusk", "lit", "flicker", "night"))
    assert run_image(generator, recorder) is True
    assert recorder.prompts == ["dusk", "lit", "flicker", "night"]
    assert recorder.positions == [(10, 20), (330, 20), (10, 260), (330, 260)]
    assert all(c[4]["referenceImage"] == IMAGE for c in recorder.calls)
    # One model call, carrying the composed instruction
    assert len(generator.calls) == 1
    assert "基础提示词: a lantern at dusk" in generator.calls[0]


def test_image_run_unparseable_text_still_counts_as_success(make_generator, recorder):
    generator = make_generator(response="just one paragraph")
    assert run_image(generator, recorder) is True
    assert recorder.prompts == list(DEFAULT_KEYFRAMES)


def test_image_run_falls_back_when_model_raises(make_generator, recorder):
    generator = make_generator(error=RuntimeError("upstream timeout"))
    assert run_image(generator, recorder) is False
    assert recorder.prompts == LANTERN_BEATS
    assert all("referenceImage" not in c[4] for c in recorder.calls)
    assert len(generator.calls) == 1


@pytest.mark.parametrize("response", [None, "", "   \n\n  ", 42])
def test_image_run_falls_back_on_unusable_response(make_generator, recorder, response):
    generator = make_generator(response=response)
    assert run_image(generator, recorder) is False
    assert recorder.prompts == LANTERN_BEATS


def test_image_run_without_image_skips_model(make_generator, recorder):
    generator = make_generator(response=tagged("a", "b", "c", "d"))
    assert run_image(generator, recorder, image=None) is False
    assert generator.calls == []
    assert recorder.prompts == LANTERN_BEATS


def test_image_run_passes_params_through(make_generator, recorder):
    generator = make_generator(error=ValueError("boom"))
    run_image(generator, recorder, params={"model": "flux", "ratio": "9:16", "batchSize": 3})
    data = recorder.calls[0][4]
    assert (data["model"], data["ratio"], data["batchSize"]) == ("flux", "9:16", 3)
    assert data["aspectRatio"] == 9 / 16


def test_final_state_records_terminal_status_and_tier(make_generator, recorder):
    generator = make_generator(response="p1\n\np2\n\np3\n\np4")
    state = asyncio.run(run_storyboard_from_image(IMAGE, "x", 0, 0, recorder, generator))
    assert state["status"] == RunStatus.MATERIALIZED
    assert state["tier"] == "paragraph"
    assert state["keyframes"] == ["p1", "p2", "p3", "p4"]

    failing = make_generator(error=RuntimeError("down"))
    state = asyncio.run(run_storyboard_from_image(IMAGE, "x", 0, 0, recorder, failing))
    assert state["status"] == RunStatus.FALLBACK_MATERIALIZED
    assert "down" in state["error"]


def test_every_run_produces_four_nonempty_prompts(make_generator):
    responses = [tagged("a", "b", "c", "d"), "", "garbage", "a\n\nb", None, "【KF1/4】\n画面描述：   "]
    for response in responses:
        recorder_calls = []
        generator = make_generator(response=response)
        run_image(generator, lambda *args: recorder_calls.append(args))
        prompts = [c[4]["prompt"] for c in recorder_calls]
        assert len(prompts) == 4
        assert all(p.strip() for p in prompts)
