"""Smoke tests for configuration, simulation, validation and export.

These tests verify basic functionality without deep validation.
Run these first to catch obvious breakage.
"""

import json
import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from pydantic import ValidationError

from stakeledger.cli import apply_overrides, main
from stakeledger.config.loader import config_from_dict, load_config
from stakeledger.config.schema import Config
from stakeledger.engine.fixed_point import WAD, deposit_capacity
from stakeledger.reporting.export import export_csv, export_json, snapshots_to_frame
from stakeledger.simulation.runner import SimulationRunner, SimulationResult
from stakeledger.validation.sanity_checks import (
    SanityChecker,
    ValidationWarning,
    validate_simulation_results,
)


def _make_small_result(steps=60, seed=42):
    """Create a small simulation result for fast tests."""
    config = load_config()
    config.simulation.num_steps = steps
    runner = SimulationRunner(config)
    return runner.run(random_seed=seed)


class TestConfigLoading:
    """Smoke tests for configuration loading."""

    def test_load_default_config(self):
        """Config loads without errors."""
        config = load_config()
        assert config is not None
        assert isinstance(config, Config)

    def test_default_values(self):
        """Defaults describe the reference campaign."""
        config = load_config()
        assert config.campaign.reward_budget == 1000
        assert config.campaign.duration_seconds == 90 * 86_400
        assert config.campaign.rate_wad == WAD // 10
        assert config.pool.cooldown_seconds == 7 * 86_400
        assert config.pool.to_units(1) == 10 ** 18

    def test_config_hash_is_deterministic(self):
        """Same config produces same hash."""
        assert load_config().compute_hash() == load_config().compute_hash()

    def test_config_hash_changes_with_values(self):
        """Changing a parameter changes the hash."""
        config = load_config()
        before = config.compute_hash()
        config.campaign.rate = 0.2
        assert config.compute_hash() != before

    def test_config_from_dict_minimal(self):
        """Only the campaign section is required."""
        config = config_from_dict({
            'campaign': {'reward_budget': 10, 'duration_days': 30, 'rate': 0.05}
        })
        assert config.pool.reward_vault == "vault"
        assert config.simulation.num_users == 10

    def test_invalid_config_rejected(self):
        """Schema constraints reject nonsense."""
        with pytest.raises(ValidationError):
            config_from_dict({'campaign': {'reward_budget': 10, 'duration_days': 30, 'rate': 0}})
        with pytest.raises(ValidationError):
            config_from_dict({
                'campaign': {'reward_budget': 10, 'duration_days': 30, 'rate': 0.1},
                'simulation': {
                    'stake_weight': 0, 'request_weight': 0,
                    'redeem_weight': 0, 'claim_weight': 0,
                },
            })

    def test_load_config_from_file(self, tmp_path):
        """YAML files on disk load the same way."""
        path = tmp_path / "pool.yaml"
        path.write_text(
            "campaign:\n  reward_budget: 50\n  duration_days: 10\n  rate: 0.2\n"
            "pool:\n  cooldown_seconds: 60\n"
        )
        config = load_config(str(path))
        assert config.pool.cooldown_seconds == 60
        assert config.campaign.rate_wad == WAD // 5

    def test_non_mapping_file_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            load_config(str(path))


class TestSimulation:
    """Smoke tests for the simulation runner."""

    def test_simulation_completes(self):
        """One snapshot per step plus the initial one."""
        result = _make_small_result(steps=40)
        assert isinstance(result, SimulationResult)
        assert len(result.snapshots) == 41

    def test_no_conservation_errors(self):
        """Default scenario conserves rewards and custody."""
        result = _make_small_result(steps=120)
        assert result.conservation_errors == []
        assert result.final_metrics['total_accrued'] > 0

    def test_deterministic_with_seed(self):
        """Same seed reproduces the same history."""
        a = _make_small_result(steps=50, seed=7)
        b = _make_small_result(steps=50, seed=7)
        assert a.snapshots == b.snapshots
        assert a.rejections == b.rejections

    def test_actions_counted(self):
        """Every step dispatches exactly one user action."""
        result = _make_small_result(steps=50)
        user_actions = sum(
            count for name, count in result.actions.items() if name != "extend_campaign"
        )
        assert user_actions == 50

    def test_extensions(self):
        """Campaign extensions keep the end time monotone."""
        config = load_config()
        config.simulation.num_steps = 80
        config.simulation.extend_probability = 0.2
        result = SimulationRunner(config).run(random_seed=3)

        ends = [s.campaign_end_time for s in result.snapshots]
        assert ends == sorted(ends)
        assert result.actions.get("extend_campaign", 0) > 0
        assert result.conservation_errors == []

    def test_redeem_without_requests_is_skipped(self):
        """With nothing queued, redeem steps are skipped instead of attempted."""
        config = config_from_dict({
            'campaign': {'reward_budget': 1000, 'duration_days': 90, 'rate': 0.1},
            'simulation': {
                'num_steps': 15, 'stake_weight': 0, 'request_weight': 0,
                'redeem_weight': 1, 'claim_weight': 0,
            },
        })
        result = SimulationRunner(config).run(random_seed=1)

        assert result.actions == {"redeem_skipped": 15}
        assert result.rejections == {}


class TestValidation:
    """Smoke tests for sanity checks."""

    def test_default_config_is_clean(self):
        """Defaults raise no warnings."""
        assert SanityChecker(load_config()).check_config_inputs() == []

    def test_underfunded_vault_flagged(self):
        config = load_config()
        config.simulation.vault_funding = 10
        warnings = SanityChecker(config).check_config_inputs()
        assert any(w.severity == "error" and w.category == "input" for w in warnings)

    def test_simulation_results_validate(self):
        """A clean run has no validation errors."""
        result = _make_small_result(steps=80)
        warnings = validate_simulation_results(result)
        assert [w for w in warnings if w.severity == "error"] == []

    def test_history_regression_detected(self):
        """A decreasing index is reported."""
        result = _make_small_result(steps=20)
        snapshots = list(result.snapshots)
        last = snapshots[-1]
        from dataclasses import replace
        snapshots.append(replace(last, t=last.t + 1, index=last.index - 1))

        warnings = SanityChecker(result.config).check_history(snapshots)
        assert any(isinstance(w, ValidationWarning) and w.category == "monotonicity" for w in warnings)

    def test_conservation_gap_detected(self):
        """check_snapshot flags a gap beyond tolerance."""
        result = _make_small_result(steps=20)
        from dataclasses import replace
        broken = replace(result.snapshots[-1], total_claimable=result.snapshots[-1].total_claimable + 10 ** 6)

        warnings = SanityChecker(result.config).check_snapshot(broken, tolerance=10)
        assert any(w.category == "conservation" for w in warnings)

    def test_capacity_check_matches_engine(self):
        """Validation uses the same capacity formula as the engine."""
        config = load_config()
        capacity = deposit_capacity(
            config.pool.to_units(config.campaign.reward_budget),
            config.campaign.duration_seconds,
            config.campaign.rate_wad,
        )
        assert capacity // 10 ** 18 == 40_555


class TestExport:
    """Smoke tests for export."""

    def test_frame_columns(self):
        result = _make_small_result(steps=10)
        df = snapshots_to_frame(result.snapshots)
        assert len(df) == 11
        for column in ('t', 'index', 'total_accrued', 'conservation_gap', 'total_staked_tokens'):
            assert column in df.columns

    def test_export_csv(self, tmp_path):
        result = _make_small_result(steps=10)
        path = tmp_path / "out.csv"
        export_csv(result, str(path))
        lines = path.read_text().strip().splitlines()
        assert len(lines) == 12  # header + 11 snapshots

    def test_export_json(self, tmp_path):
        result = _make_small_result(steps=10)
        path = tmp_path / "out.json"
        export_json(result, str(path))
        data = json.loads(path.read_text())
        assert data['config_hash'] == result.config.compute_hash()
        assert len(data['snapshots']) == 11


class TestCli:
    """Smoke tests for the command-line entry point."""

    def test_cli_runs(self, tmp_path, capsys):
        path = tmp_path / "out.json"
        code = main(["--steps", "15", "--seed", "5", "--json", str(path)])
        assert code == 0
        assert path.exists()
        assert "Config hash" in capsys.readouterr().out

    def test_cli_rejects_non_positive_steps(self, capsys):
        """Overrides go through the same schema constraints as the YAML file."""
        for steps in ("0", "-5"):
            with pytest.raises(SystemExit) as excinfo:
                main(["--steps", steps])
            assert excinfo.value.code == 2
        assert "invalid configuration" in capsys.readouterr().err

    def test_overrides_are_validated_copies(self):
        config = load_config()
        updated = apply_overrides(config, steps=12)
        assert updated.simulation.num_steps == 12
        assert config.simulation.num_steps == 200
        with pytest.raises(ValidationError):
            apply_overrides(config, steps=0)
