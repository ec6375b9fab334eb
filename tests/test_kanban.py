import io

from huabot import kanban


def test_banner_printed(monkeypatch):
    monkeypatch.delenv(kanban.NOTICE_ENV, raising=False)
    buf = io.StringIO()
    kanban.print_banner(buf)
    out = buf.getvalue()
    assert kanban.BANNER in out
    assert "暂无公告" in out
    assert out.endswith("\n\n")


def test_notice_from_file(tmp_path, monkeypatch):
    p = tmp_path / "n.txt"
    p.write_text("hello notice\n", encoding="utf-8")
    monkeypatch.setenv(kanban.NOTICE_ENV, str(p))
    assert kanban.kanban() == "hello notice"