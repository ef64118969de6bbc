"""Tests for the demo entry point."""
import orjson
from eventmerge import __main__ as demo


def test_demo_prints_merged_samples(monkeypatch, capsys):
    """Test the demo merges the samples and prints them as JSON."""
    monkeypatch.setenv("TIME_SCALE", "100")
    monkeypatch.setattr(demo, "setup_logging", lambda **kwargs: None)

    assert demo.main() == 0

    events = orjson.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert len(events) == 10
    assert [e["value"]["value"] for e in events] == [1, 2, "a", 3, "b", "c", 4, "d", "e", 5]
    assert {e["source"] for e in events} == {"ints", "texts"}
