from __future__ import annotations

from blueprints.composer import compose, processing_defaults
from blueprints.models import (
    HighlightPrompt,
    IsolatePrompt,
    PassthroughPrompt,
    ScalePrompt,
    parse_prompt,
)

SOURCE = "https://cdn.example.test/originals/plan.png"


def test_defaults_come_from_settings(settings):
    defaults = processing_defaults(settings, SOURCE)
    assert defaults == {
        "mode": "blueprint",
        "inputType": "image_url",
        "image_url": SOURCE,
        "progressive": False,
        "want": "geometry",
    }


def test_highlight_merges_over_defaults(settings):
    prompt = parse_prompt({"type": "highlight", "target": "fence", "color": "#FF0000"})
    assert isinstance(prompt, HighlightPrompt)

    body = compose(processing_defaults(settings, SOURCE), prompt)

    assert body["image_url"] == SOURCE
    assert body["type"] == "highlight"
    assert body["target"] == "fence"
    assert body["color"] == "#FF0000"


def test_prompt_fields_win_on_collision(settings):
    prompt = parse_prompt({"type": "isolate", "target": "walls", "want": "overlay", "progressive": True})
    assert isinstance(prompt, IsolatePrompt)

    body = compose(processing_defaults(settings, SOURCE), prompt)

    assert body["want"] == "overlay"
    assert body["progressive"] is True
    assert body["mode"] == "blueprint"


def test_optional_fields_are_omitted():
    assert HighlightPrompt(target="fence").fields() == {"type": "highlight", "target": "fence"}
    assert ScalePrompt(factor=2).fields() == {"type": "scale", "factor": 2}
    assert ScalePrompt(factor=0.5, target="room").fields()["target"] == "room"


def test_unknown_prompt_passes_through():
    raw = {"type": "vectorize", "layers": ["walls", "doors"], "tolerance": 0.2}
    prompt = parse_prompt(raw)

    assert isinstance(prompt, PassthroughPrompt)
    assert compose({"mode": "blueprint"}, prompt) == {"mode": "blueprint", **raw}


def test_known_type_with_bad_fields_passes_through():
    assert isinstance(parse_prompt({"type": "scale", "factor": "big"}), PassthroughPrompt)
    assert isinstance(parse_prompt({"type": "scale", "factor": True}), PassthroughPrompt)
    assert isinstance(parse_prompt({"type": "highlight"}), PassthroughPrompt)
    assert isinstance(parse_prompt({"type": "highlight", "target": "fence", "color": 7}), PassthroughPrompt)


def test_extra_fields_on_known_variants_are_kept():
    prompt = parse_prompt({"type": "highlight", "target": "fence", "thickness": 3})
    assert isinstance(prompt, HighlightPrompt)
    assert prompt.fields()["thickness"] == 3


def test_non_object_prompt_is_wrapped():
    prompt = parse_prompt("highlight the fence")
    assert compose({}, prompt) == {"prompt": "highlight the fence"}


def test_compose_does_not_mutate_defaults(settings):
    defaults = processing_defaults(settings, SOURCE)
    snapshot = dict(defaults)
    compose(defaults, parse_prompt({"type": "isolate", "target": "walls", "mode": "x"}))
    assert defaults == snapshot
