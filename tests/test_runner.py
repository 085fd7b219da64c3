import os
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path

from app.services.crawl.runner import main, render_file

FIXTURE = Path(__file__).parent / "fixtures" / "work_12345.html"


def test_feed_from_local_file(monkeypatch):
    monkeypatch.delenv("AO3_USERNAME", raising=False)
    monkeypatch.delenv("AO3_PASSWORD", raising=False)
    with tempfile.TemporaryDirectory() as tmpdir:
        out = os.path.join(tmpdir, "feed.xml")
        assert main(["feed", "12345", "--file", str(FIXTURE), "--out", out]) == 0
        root = ET.parse(out).getroot()
    assert root.find("channel/title").text == "Sample Fic"
    assert root.find("channel/link").text.endswith("/works/12345")
    assert len(root.findall("channel/item")) == 2


def test_feed_from_broken_file_fails(monkeypatch, tmp_path):
    monkeypatch.delenv("AO3_USERNAME", raising=False)
    monkeypatch.delenv("AO3_PASSWORD", raising=False)
    broken = tmp_path / "broken.html"
    broken.write_text("<html><h2 class='title'>Only a title</h2></html>", encoding="utf-8")
    assert main(["feed", "1", "--file", str(broken)]) == 1


def test_render_file_does_not_read_environment(monkeypatch):
    # A half credential pair would be rejected by load_settings()
    monkeypatch.setenv("AO3_USERNAME", "someone")
    monkeypatch.delenv("AO3_PASSWORD", raising=False)
    root = ET.fromstring(render_file(12345, str(FIXTURE), site="http://mirror.test"))
    assert root.find("channel/link").text == "http://mirror.test/works/12345"
    assert root.find("channel/item/link").text == "http://mirror.test/works/12345/chapters/111"
