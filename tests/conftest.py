"""
Pytest configuration and shared fixtures.
"""

import json
from typing import Any, Callable, Dict, List

import pytest

from daly_master.common.types import Presentation


def make_slide(index: int, **overrides: Any) -> Dict[str, Any]:
    """Build a wire-format slide dict (camelCase keys)."""
    slide = {
        "id": f"slide-{index}",
        "title": f"Slide {index}",
        "bulletPoints": [f"Point {index}.1", f"Point {index}.2"],
        "chartType": "none",
    }
    slide.update(overrides)
    return slide


@pytest.fixture
def slide_factory() -> Callable[..., Dict[str, Any]]:
    return make_slide


@pytest.fixture
def eight_slide_payload() -> Dict[str, List[Dict[str, Any]]]:
    """A realistic eight-slide response as the model would return it."""
    slides = [make_slide(i) for i in range(1, 9)]
    slides[0].update(subtitle="Global Burden of Disease perspective", imagePrompt="A spine x-ray")
    slides[4].update(
        chartType="bar",
        chartData=[{"name": "1990", "value": 450}, {"name": "2019", "value": 600}],
        footer="Source: GBD 2019",
    )
    slides[5].update(
        chartType="pie",
        chartData=[
            {"name": "Healthcare", "value": 40},
            {"name": "Lost productivity", "value": 45},
            {"name": "Other", "value": 15},
        ],
    )
    slides[6].update(chartType="line", chartData=[{"name": "2000", "value": 1.0}, {"name": "2010", "value": 1.4}])
    return {"slides": slides}


@pytest.fixture
def eight_slide_json(eight_slide_payload) -> str:
    return json.dumps(eight_slide_payload)


@pytest.fixture
def presentation(eight_slide_payload) -> Presentation:
    return Presentation.model_validate(eight_slide_payload)


@pytest.fixture
def make_presentation() -> Callable[[int], Presentation]:
    def _make(count: int) -> Presentation:
        return Presentation.model_validate({"slides": [make_slide(i) for i in range(1, count + 1)]})
    return _make
