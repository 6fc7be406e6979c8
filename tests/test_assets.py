from cap_builder import assets
from cap_builder.config import ProjectPaths


def _assets_dir(tmp_path, names=assets.REQUIRED_FILES):
    d = tmp_path / "assets"
    d.mkdir()
    for name in names:
        (d / name).write_bytes(b"png")
    return ProjectPaths.from_root(str(tmp_path))


def test_generate_assets_runs_capacitor_assets(tmp_path, monkeypatch) -> None:
    paths = _assets_dir(tmp_path)
    calls: list = []
    monkeypatch.setattr(
        assets, "run_cmd", lambda cmd, cwd=None, stream=True: calls.append((cmd, cwd, stream))
    )

    assert assets.generate_assets(paths, "ios")
    assert calls == [
        (["npx", "capacitor-assets", "generate", "--ios", "--verbose"], str(tmp_path), False)
    ]


def test_generate_assets_without_directory_is_skipped(tmp_path, capsys) -> None:
    assert assets.generate_assets(ProjectPaths.from_root(str(tmp_path)), "android") is False
    assert "assets directory not found" in capsys.readouterr().err


def test_generate_assets_reports_missing_files(tmp_path, capsys) -> None:
    paths = _assets_dir(tmp_path, ["splash.png", "icon-only.png"])

    assert assets.generate_assets(paths, "android") is False
    err = capsys.readouterr().err
    assert "splash-dark.png" in err
    assert "icon-background.png" in err


def test_generate_assets_failure_is_not_fatal(tmp_path, monkeypatch) -> None:
    paths = _assets_dir(tmp_path)

    def fail(*_a, **_k):
        raise RuntimeError("Command failed (1): npx capacitor-assets")

    monkeypatch.setattr(assets, "run_cmd", fail)

    assert assets.generate_assets(paths, "android") is False
