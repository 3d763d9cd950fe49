# tests/conftest.py
import itertools

import pytest

import script
import target

SVG = b'<svg xmlns="http://www.w3.org/2000/svg" width="96" height="96"/>'


@pytest.fixture
def sequential_ids(monkeypatch):
    """Replace random ids with predictable ones: id0001, id0002, ..."""
    counter = itertools.count(1)

    def next_id():
        return f"id{next(counter):04d}"

    monkeypatch.setattr(script, "generate_id", next_id)
    monkeypatch.setattr(target, "generate_id", next_id)
    return next_id


@pytest.fixture
def svg_bytes():
    return SVG


@pytest.fixture
def stage(svg_bytes):
    stage = target.Target()
    stage.add_costume("backdrop1", "svg", svg_bytes)
    return stage
