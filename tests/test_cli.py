"""Tests for the fidelity-check command line."""

import json
import sys
from pathlib import Path

import numpy as np
import pytest
from fidelity_checker.__main__ import EXIT_ERROR, EXIT_FAIL, main
from PIL import Image


def _save(path: Path, width: int, height: int, block: tuple[int, int, int, int] | None = None) -> str:
    arr = np.full((height, width, 3), 255, dtype=np.uint8)
    if block:
        x, y, w, h = block
        arr[y : y + h, x : x + w] = 0
    Image.fromarray(arr).save(path)
    return str(path)


def _run(monkeypatch: pytest.MonkeyPatch, *argv: str) -> None:
    monkeypatch.setattr(sys, 'argv', ['fidelity-check', *argv])
    main()


@pytest.fixture
def images(isolated_cwd: Path) -> dict[str, str]:
    return {
        'design': _save(isolated_cwd / 'design.png', 200, 200),
        'same': _save(isolated_cwd / 'same.png', 200, 200),
        'changed': _save(isolated_cwd / 'changed.png', 200, 200, (50, 50, 60, 40)),
        'wide': _save(isolated_cwd / 'wide.png', 300, 200),
    }


class TestCompare:
    def test_text_identical(self, monkeypatch, capsys, images):
        _run(monkeypatch, 'compare', images['design'], images['same'])
        out = capsys.readouterr().out
        assert 'similarity 100.00%' in out
        assert 'No significant mismatches.' in out

    def test_json(self, monkeypatch, capsys, images):
        _run(monkeypatch, 'compare', images['design'], images['changed'], '--json', '-s', 'Home')
        obj = json.loads(capsys.readouterr().out)
        assert obj['similarity'] == 94.0
        assert obj['metadata']['screenName'] == 'Home'
        assert obj['mismatches'][0]['bbox'] == {'x': 50, 'y': 50, 'width': 60, 'height': 40}

    def test_out_dir(self, monkeypatch, capsys, images, isolated_cwd):
        out_dir = isolated_cwd / 'out'
        _run(monkeypatch, 'compare', images['design'], images['changed'], '-o', str(out_dir), '-j')
        assert (out_dir / 'diff.png').is_file()
        report = json.loads((out_dir / 'report.json').read_text())
        assert report['diffImage'] == str(out_dir / 'diff.png')
        assert 'wrote' in capsys.readouterr().err

    def test_fail_under(self, monkeypatch, capsys, images):
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, 'compare', images['design'], images['changed'], '--fail-under', '99')
        assert exc.value.code == EXIT_FAIL
        assert 'FAIL: similarity 94.00% is below 99.0%' in capsys.readouterr().out

    def test_fail_under_passes(self, monkeypatch, images):
        _run(monkeypatch, 'compare', images['design'], images['changed'], '--fail-under', '90')

    def test_max_regions_flag(self, monkeypatch, capsys, images):
        _run(monkeypatch, 'compare', images['design'], images['changed'], '-j', '-n', '0')
        assert json.loads(capsys.readouterr().out)['mismatches'] == []

    def test_manual_crop_without_rectangle(self, monkeypatch, capsys, images):
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, 'compare', images['design'], images['same'], '--mode', 'manual-crop')
        assert exc.value.code == EXIT_ERROR
        assert 'crop rectangle' in capsys.readouterr().err

    def test_manual_crop(self, monkeypatch, capsys, images):
        _run(monkeypatch, 'compare', images['design'], images['same'], '-m', 'manual-crop', '-c', '0,0,100,100')
        assert 'similarity 100.00%' in capsys.readouterr().out

    def test_bad_crop_value(self, monkeypatch, images):
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, 'compare', images['design'], images['same'], '-c', '1,2,3')
        assert exc.value.code == 2

    def test_missing_file(self, monkeypatch, capsys, images):
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, 'compare', images['design'], 'nope.png')
        assert exc.value.code == EXIT_ERROR
        assert 'image not found: nope.png' in capsys.readouterr().err

    def test_undecodable_file(self, monkeypatch, capsys, images, isolated_cwd):
        bad = isolated_cwd / 'bad.png'
        bad.write_bytes(b'not a png')
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, 'compare', images['design'], str(bad))
        assert exc.value.code == EXIT_ERROR
        assert 'Failed to decode' in capsys.readouterr().err

    def test_settings_from_dotenv(self, monkeypatch, capsys, images, isolated_cwd):
        monkeypatch.setenv('FIDELITY_MAX_REGIONS', '')
        monkeypatch.delenv('FIDELITY_MAX_REGIONS')
        (isolated_cwd / '.env').write_text('FIDELITY_MAX_REGIONS=0\n')
        _run(monkeypatch, 'compare', images['design'], images['changed'], '--json')
        captured = capsys.readouterr()
        assert json.loads(captured.out)['mismatches'] == []
        assert 'loaded' in captured.err


class TestViewport:
    def test_mismatch(self, monkeypatch, capsys, images):
        _run(monkeypatch, 'viewport', images['design'], images['wide'])
        out = capsys.readouterr().out
        assert 'design 200x200  implementation 300x200' in out
        assert 'MISMATCH width ratio 1.5' in out

    def test_compatible(self, monkeypatch, capsys, images):
        _run(monkeypatch, 'viewport', images['design'], images['same'])
        assert 'OK viewport sizes are compatible' in capsys.readouterr().out


class TestHelp:
    def test_lists_stages(self, monkeypatch, capsys, isolated_cwd):
        _run(monkeypatch, 'help')
        out = capsys.readouterr().out
        for name in ('viewport', 'normalize', 'diff', 'regions', 'categorize'):
            assert name in out

    def test_stage_docs(self, monkeypatch, capsys, isolated_cwd):
        _run(monkeypatch, 'help', 'categorize')
        assert 'component-state' in capsys.readouterr().out

    def test_unknown_stage(self, monkeypatch, capsys, isolated_cwd):
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, 'help', 'nope')
        assert exc.value.code == EXIT_FAIL
        assert 'Unknown stage: nope' in capsys.readouterr().err

    def test_no_command(self, monkeypatch, isolated_cwd):
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch)
        assert exc.value.code == EXIT_FAIL
