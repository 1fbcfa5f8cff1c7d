import pytest

from folio.assets import StaticFileCopier
from folio.errors import FilesystemError


def test_static_files_are_copied_unchanged(tmp_path):
    site = tmp_path / "site"
    (site / "images").mkdir(parents=True)
    (site / "_layouts").mkdir()
    (site / ".git").mkdir()
    (site / "images" / "logo.png").write_bytes(b"\x89PNG\x00")
    (site / "robots.txt").write_text("User-agent: *\n", encoding="utf-8")
    (site / "_layouts" / "post.html.jinja").write_text("{{ content }}", encoding="utf-8")
    (site / ".git" / "config").write_text("x", encoding="utf-8")
    (site / "2015-01-01-post.md").write_text("---\n---\n", encoding="utf-8")
    (site / "images" / "_private.txt").write_text("x", encoding="utf-8")

    output = tmp_path / "output"
    copied = StaticFileCopier(site, output).run()

    assert copied == ["images/logo.png", "robots.txt"]
    assert (output / "images" / "logo.png").read_bytes() == b"\x89PNG\x00"
    assert not (output / "_layouts").exists()
    assert not (output / "2015-01-01-post.md").exists()


def test_copy_failure_is_filesystem_error(tmp_path):
    site = tmp_path / "site"
    (site / "css").mkdir(parents=True)
    (site / "css" / "main.css").write_text("body {}", encoding="utf-8")
    output = tmp_path / "output"
    output.mkdir()
    # A file where the css directory should go.
    (output / "css").write_text("blocker", encoding="utf-8")

    with pytest.raises(FilesystemError) as excinfo:
        StaticFileCopier(site, output).run()
    assert excinfo.value.identifier == "css/main.css"
