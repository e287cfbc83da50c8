"""
Shared scene fixtures for the isonav test suite.

The standard scene has one box scene ``app`` (section ``intro``) holding three
bookmarked elements and an unbookmarked legend, plus a loose bookmarked root
``notes`` outside any scene:

    index 0: web    (frontend, section intro via the scene)
    index 1: api    (backend, literal pan)
    index 2: db     (db, section storage)
    index 3: notes  (keeps rotation/zoom, auto-centers, no section)
"""

import copy

import pytest

from isonav_core.compiler import compile_from_dict


SCENE_SPEC = {
    "scene": [
        {
            "id": "app",
            "kind": "scene",
            "section": "intro",
            "rect": [-200, -150, 400, 300],
            "colors": {"background": "#fafafa", "border": "#9e9e9e"},
            "children": [
                {
                    "id": "web",
                    "groups": ["frontend"],
                    "activate": ["frontend"],
                    "rect": [-180, -130, 100, 80],
                    "colors": {"background": "#e3f2fd", "border": "#1e88e5", "text": "#0d47a1"},
                    "nav": {"xyz": "30.0.-40", "zoom": "1.5"},
                },
                {
                    "id": "api",
                    "groups": ["backend"],
                    "activate": ["backend"],
                    "section": "backend",
                    "rect": [-40, -130, 100, 80],
                    "nav": {"xyz": "45.0.-20", "zoom": "1.2", "pan": "10,20"},
                },
                {
                    "id": "db",
                    "groups": ["db"],
                    "activate": ["db"],
                    "section": "storage",
                    "rect": [100, 20, 80, 80],
                    "colors": {"background": "#e8f5e9", "border": "#43a047"},
                    "nav": {"xyz": "30.0.-40", "zoom": "1.5"},
                },
                {"id": "legend", "colors": {"text": "#333333"}},
            ],
        },
        {"id": "notes", "rect": [250, 200, 100, 50], "nav": {}},
    ],
    "connectors": [
        {"ids": "web,api", "positions": "right,left", "groups": "frontend", "endStyles": "none,arrow"},
        {"ids": "api,db", "positions": "right,top", "vertices": "40,30", "groups": "db", "animated": True},
    ],
}


@pytest.fixture
def make_doc():
    """Factory compiling the standard scene with optional config overrides."""

    def _make(**config):
        spec = copy.deepcopy(SCENE_SPEC)
        if config:
            spec["config"] = config
        return compile_from_dict(spec)

    return _make


@pytest.fixture
def make_widget(make_doc):
    """Factory building a widget on the standard scene."""

    def _make(measure_mode=None, **config):
        doc = make_doc(**config)
        if measure_mode is None:
            return doc.build_widget()
        return doc.build_widget(measure_mode=measure_mode)

    return _make


@pytest.fixture
def widget(make_widget):
    return make_widget()
