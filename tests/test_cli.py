"""End-to-end tests for the blockdiff CLI on local image files."""

import json
from pathlib import Path

import numpy as np
import pytest
from blockdiff.__main__ import main
from PIL import Image


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A clean cwd with a .git boundary so no stray .env is loaded."""
    # setenv first so teardown also removes anything a loaded .env adds
    for name in ('X_SEGMENTS', 'Y_SEGMENTS', 'TIMEOUT', 'STRICT', 'LOG_LEVEL'):
        monkeypatch.setenv(f'BLOCKDIFF_{name}', '')
        monkeypatch.delenv(f'BLOCKDIFF_{name}')
    (tmp_path / '.git').mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def images(workdir: Path) -> tuple[Path, Path]:
    base = np.full((100, 100, 3), 100, dtype=np.uint8)
    changed = base.copy()
    changed[:10, :10] = 150
    a, b = workdir / 'a.png', workdir / 'b.png'
    Image.fromarray(base).save(a)
    Image.fromarray(changed).save(b)
    return a, b


class TestCompare:
    def test_json_output(self, images: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
        a, b = images
        main(['compare', str(a), str(b), '--json'])
        parsed = json.loads(capsys.readouterr().out)
        assert parsed['scores']['scalar'] == pytest.approx(25.0)
        assert parsed['grid'] == {'x_segments': 10, 'y_segments': 10}
        assert parsed['pass'] is True

    def test_all_metrics_agree(self, images: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
        a, b = images
        main(['compare', str(a), str(b), '-m', 'all', '-j'])
        parsed = json.loads(capsys.readouterr().out)
        assert set(parsed['scores']) == {'scalar', 'vectorized'}
        assert parsed['consistent'] is True

    def test_text_output(self, images: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
        a, b = images
        main(['compare', str(a), str(b), '-x', '5', '-y', '4'])
        out = capsys.readouterr().out
        assert '5×4 blocks' in out
        assert out.strip().endswith('PASS')

    def test_fail_above(self, images: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
        a, b = images
        with pytest.raises(SystemExit) as excinfo:
            main(['compare', str(a), str(b), '--fail-above', '10'])
        assert excinfo.value.code == 1
        assert 'FAIL' in capsys.readouterr().out

    def test_settings_from_env_file(
        self, images: tuple[Path, Path], workdir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        a, b = images
        env_file = workdir / 'grid.env'
        env_file.write_text('BLOCKDIFF_X_SEGMENTS=4\nBLOCKDIFF_Y_SEGMENTS=2\n')
        main(['--env-file', str(env_file), 'compare', str(a), str(b), '-j'])
        parsed = json.loads(capsys.readouterr().out)
        assert parsed['grid'] == {'x_segments': 4, 'y_segments': 2}

    def test_strict_is_default(self, images: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
        a, b = images
        main(['compare', str(a), str(b), '-j'])
        assert json.loads(capsys.readouterr().out)['strict'] is True

    @pytest.mark.parametrize(('flag', 'expected'), [(None, False), ('--strict', True), ('--no-strict', False)])
    def test_strict_flag_overrides_env(
        self,
        images: tuple[Path, Path],
        workdir: Path,
        capsys: pytest.CaptureFixture[str],
        flag: str | None,
        expected: bool,
    ) -> None:
        a, b = images
        env_file = workdir / 'lenient.env'
        env_file.write_text('BLOCKDIFF_STRICT=false\n')
        argv = ['--env-file', str(env_file), 'compare', str(a), str(b), '-j']
        if flag:
            argv.append(flag)
        main(argv)
        assert json.loads(capsys.readouterr().out)['strict'] is expected

    def test_save_dir(self, images: tuple[Path, Path], workdir: Path) -> None:
        a, b = images
        main(['compare', str(a), str(b), '--save-dir', str(workdir / 'saved')])
        assert (workdir / 'saved' / 'a.png').is_file()
        assert (workdir / 'saved' / 'b.png').is_file()

    def test_missing_image(self, images: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
        a, _b = images
        with pytest.raises(SystemExit) as excinfo:
            main(['compare', str(a), 'nope.png'])
        assert excinfo.value.code == 1
        assert 'image not found' in capsys.readouterr().err

    def test_invalid_grid(self, images: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
        a, b = images
        with pytest.raises(SystemExit) as excinfo:
            main(['compare', str(a), str(b), '-x', '0'])
        assert excinfo.value.code == 1
        assert 'x_segments' in capsys.readouterr().err

    def test_lane_alignment(self, images: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
        a, b = images
        with pytest.raises(SystemExit):
            main(['compare', str(a), str(b), '-x', '3', '-y', '3', '-m', 'vectorized'])
        assert 'lanes of width 4' in capsys.readouterr().err

    def test_unknown_metric(self, images: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
        a, b = images
        with pytest.raises(SystemExit):
            main(['compare', str(a), str(b), '-m', 'cosine'])
        assert 'Unknown metric' in capsys.readouterr().err


class TestBlocks:
    def test_text(self, images: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
        _a, b = images
        main(['blocks', str(b), '-x', '10', '-y', '10'])
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 11
        assert lines[1].split()[0] == '#969696'
        assert lines[1].split()[1] == '#646464'

    def test_json(self, images: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
        a, _b = images
        main(['blocks', str(a), '-x', '2', '-y', '2', '-j'])
        parsed = json.loads(capsys.readouterr().out)
        assert parsed['blocks'] == [[100, 100, 100]] * 4


class TestHelp:
    def test_lists_metrics(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        main(['help'])
        out = capsys.readouterr().out
        assert 'scalar' in out
        assert 'vectorized' in out

    def test_metric_docs(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        main(['help', 'vectorized'])
        assert 'LANE_WIDTH' in capsys.readouterr().out

    def test_unknown(self, workdir: Path) -> None:
        with pytest.raises(SystemExit):
            main(['help', 'cosine'])

    def test_no_command(self, workdir: Path) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main([])
        assert excinfo.value.code == 1
