"""
===============================================================================
ASTRODYN - Command-Line Test Suite
===============================================================================
"""

import pytest

from astrodyn.guidance.hohmann import HohmannTransferOrbit
from astrodyn.main import build_parser, main

from conftest import EARTH_MU


class TestHohmannCommand:

    def test_prints_burns(self, capsys):
        code = main(['hohmann', '--mu', str(EARTH_MU), '--r1', '6678e3', '--r2', '42164e3'])
        out = capsys.readouterr().out

        burns = HohmannTransferOrbit.calculate_burn(EARTH_MU, 6678e3, 42164e3)
        assert code == 0
        assert "HOHMANN TRANSFER" in out
        assert f"{burns.first_burn:.3f} m/s" in out
        assert f"{burns.second_burn:.3f} m/s" in out
        assert f"{burns.coast_time:.1f} s" in out


class TestElementsCommand:

    def test_elliptical_state(self, capsys):
        code = main(['elements', '--mu', str(EARTH_MU),
                     '--position', '7000e3', '0', '0', '--velocity', '0', '0', '8000'])
        out = capsys.readouterr().out

        assert code == 0
        assert "ORBITAL ELEMENTS" in out
        assert "elliptical" in out
        assert "Period" in out

    def test_hyperbolic_state_has_no_period(self, capsys):
        code = main(['elements', '--mu', str(EARTH_MU),
                     '--position', '7000e3', '0', '0', '--velocity', '0', '0', '12000'])
        out = capsys.readouterr().out

        assert code == 0
        assert "hyperbolic" in out
        assert "Period" not in out


class TestErrors:

    def test_invalid_config_file(self, tmp_path, capsys):
        path = tmp_path / 'bad.yaml'
        path.write_text("solver:\n  kepler_tol: 1.0\n")
        code = main(['--config', str(path), 'hohmann', '--mu', '1', '--r1', '1', '--r2', '2'])
        assert code == 1
        assert "HOHMANN" not in capsys.readouterr().out

    def test_missing_config_file(self, tmp_path):
        code = main(['--config', str(tmp_path / 'missing.yaml'), 'hohmann', '--mu', '1', '--r1', '1', '--r2', '2'])
        assert code == 1

    def test_same_planet_transfer(self):
        assert main(['transfer', '--from', 'mars', '--to', 'mars']) == 1

    def test_unknown_planet_is_rejected_by_parser(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['transfer', '--to', 'moon'])

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
