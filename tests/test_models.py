from datetime import date

import pytest
from pydantic import ValidationError

from app.models.work import Chapter, Work


def test_chapter_model():
    c = Chapter(title="One", link="https://x/1", content="<p>body</p>")
    assert c.title == "One"
    assert c.summary is None


def test_chapter_requires_content():
    with pytest.raises(ValidationError):
        Chapter(title="One", link="https://x/1", content="")


def test_work_model():
    w = Work(work_id=5, title="T", publish_date=date(2020, 1, 1), update_date=date(2020, 1, 2))
    assert w.chapters == ()
    with pytest.raises(ValidationError):
        Work(work_id=-1, title="T", publish_date=date(2020, 1, 1), update_date=date(2020, 1, 2))
