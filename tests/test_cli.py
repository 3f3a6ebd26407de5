"""Tests for the command-line interface."""

import numpy as np
import pytest
from click.testing import CliRunner

from perspective.cli import main


def _parse_matrix(output: str) -> np.ndarray:
    lines = [line for line in output.strip().splitlines() if line.strip()]
    return np.array([[float(v) for v in line.split()] for line in lines[-3:]])


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestTransformCommand:
    """Test `perspective transform`."""

    def test_stretch(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ['transform', '0,0 1,0 1,1 0,1', '0,0 2,0 2,1 0,1'])
        assert result.exit_code == 0, result.output
        np.testing.assert_allclose(_parse_matrix(result.output), np.diag([2.0, 1.0, 1.0]), atol=1e-6)

    def test_semicolon_separator(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ['transform', '0,0;1,0;1,1;0,1', '0,0;2,0;2,1;0,1'])
        assert result.exit_code == 0, result.output
        np.testing.assert_allclose(_parse_matrix(result.output), np.diag([2.0, 1.0, 1.0]), atol=1e-6)

    def test_inverse(self, runner: CliRunner) -> None:
        result = runner.invoke(
            main, ['transform', '--inverse', '0,0 1,0 1,1 0,1', '0,0 2,0 2,1 0,1']
        )
        assert result.exit_code == 0, result.output
        np.testing.assert_allclose(_parse_matrix(result.output), np.diag([0.5, 1.0, 1.0]), atol=1e-6)

    def test_non_convex_falls_back_to_identity(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ['transform', '0,0 1,0 0.2,0.2 0,1', '0,0 1,0 1,1 0,1'])
        assert result.exit_code == 0, result.output
        np.testing.assert_array_equal(_parse_matrix(result.output), np.eye(3))

    def test_strict_failure_exits_nonzero(self, runner: CliRunner) -> None:
        result = runner.invoke(
            main, ['transform', '--strict', '0,0 1,0 0.2,0.2 0,1', '0,0 1,0 1,1 0,1']
        )
        assert result.exit_code == 1

    def test_order_flag(self, runner: CliRunner) -> None:
        result = runner.invoke(
            main, ['transform', '--order', '1,1 0,0 0,1 1,0', '2,1 0,0 0,1 2,0']
        )
        assert result.exit_code == 0, result.output
        np.testing.assert_allclose(_parse_matrix(result.output), np.diag([2.0, 1.0, 1.0]), atol=1e-6)

    def test_precision(self, runner: CliRunner) -> None:
        result = runner.invoke(
            main, ['transform', '--precision', '2', '0,0 1,0 1,1 0,1', '0,0 2,0 2,1 0,1']
        )
        assert result.exit_code == 0, result.output
        assert '2.00 0.00 0.00' in result.output

    @pytest.mark.parametrize("corners", ['0,0 1,0 1,1', '0,0 1,0 1,1 zero,1', '0,0 1,0 1,1 0'])
    def test_bad_corners(self, runner: CliRunner, corners: str) -> None:
        result = runner.invoke(main, ['transform', corners, '0,0 1,0 1,1 0,1'])
        assert result.exit_code == 2

    def test_debug_overlay(self, runner: CliRunner, tmp_path) -> None:
        debug_path = tmp_path / 'overlay.png'
        result = runner.invoke(
            main,
            ['transform', '--debug', str(debug_path), '0,0 100,0 100,100 0,100', '10,20 220,5 200,180 30,210'],
        )
        assert result.exit_code == 0, result.output
        # Debug images are always written as JPEG
        assert (tmp_path / 'overlay.jpg').exists()

    def test_invalid_env_config(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv('PERSPECTIVE_CONVEXITY_THRESHOLD', 'lots')
        result = runner.invoke(main, ['transform', '0,0 1,0 1,1 0,1', '0,0 2,0 2,1 0,1'])
        assert result.exit_code == 1
        assert 'PERSPECTIVE_CONVEXITY_THRESHOLD' in result.output

    @pytest.mark.parametrize("raw", ['nan', '-1'])
    def test_invalid_env_tolerance(
        self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch, raw: str
    ) -> None:
        monkeypatch.setenv('PERSPECTIVE_SINGULAR_TOLERANCE', raw)
        result = runner.invoke(main, ['transform', '0,0 1,0 1,1 0,1', '0,0 2,0 2,1 0,1'])
        assert result.exit_code == 1
        assert 'singular_tolerance' in result.output
        assert not isinstance(result.exception, np.linalg.LinAlgError)

    def test_debug_write_failure(
        self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch, tmp_path
    ) -> None:
        monkeypatch.setattr('perspective.utils.debug.cv2.imwrite', lambda *args: False)
        result = runner.invoke(
            main,
            ['transform', '--debug', str(tmp_path / 'overlay.jpg'), '0,0 1,0 1,1 0,1', '0,0 2,0 2,1 0,1'],
        )
        assert result.exit_code == 1
        assert 'Failed to write debug image' in result.output

    def test_env_config_applied(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        # Diagonal at (0.6, 0.6) gives s = 0.2
        monkeypatch.setenv('PERSPECTIVE_CONVEXITY_THRESHOLD', '0.5')
        result = runner.invoke(
            main, ['transform', '--strict', '0,0 1,0 0.6,0.6 0,1', '0,0 1,0 1,1 0,1']
        )
        assert result.exit_code == 1


class TestWarpCommand:
    """Test `perspective warp`."""

    def test_identity(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ['warp', '0,0', '0,1', '1,1', '1,0', '--size', '200', '100'])
        assert result.exit_code == 0, result.output
        np.testing.assert_allclose(_parse_matrix(result.output), np.eye(3), atol=1e-6)

    def test_moved_corner(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ['warp', '0.1,0.1', '0,1', '1,1', '0.9,0', '--size', '100', '100'])
        assert result.exit_code == 0, result.output
        matrix = _parse_matrix(result.output)
        origin = matrix @ np.array([0.0, 0.0, 1.0])
        np.testing.assert_allclose(origin[:2] / origin[2], [10.0, 10.0], atol=1e-3)

    def test_size_required(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ['warp', '0,0', '0,1', '1,1', '1,0'])
        assert result.exit_code == 2

    def test_invalid_size(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ['warp', '0,0', '0,1', '1,1', '1,0', '--size', '0', '100'])
        assert result.exit_code == 2
