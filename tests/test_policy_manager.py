import pytest
import yaml

from checktrack.core.exceptions import ConfigurationException, ValidationException
from checktrack.policy import LifecyclePolicy, PolicyConfigManager
from checktrack.sla.domain import DEFAULT_SLA_CONFIGURATIONS

POLICY_YAML = """
sla_configurations:
  - id: sla-consent
    status: pending-consent
    name: Consent Collection
    target_days: 4
    warning_threshold_percent: 50
    critical_threshold_percent: 75
escalation_rules:
  - id: esc-consent
    name: Consent Overdue
    status: pending-consent
    days_threshold: 6
    escalate_to: [manager-1]
"""


@pytest.fixture
def policy_file(tmp_path):
    path = tmp_path / "lifecycle_policy.yaml"
    path.write_text(POLICY_YAML)
    return path


def test_defaults_without_a_file(tmp_path):
    manager = PolicyConfigManager()
    manager.load(tmp_path / "missing.yaml")
    assert len(manager.get_sla_configurations()) == len(DEFAULT_SLA_CONFIGURATIONS)
    assert manager.get_escalation_rules()


def test_load_from_yaml(policy_file):
    manager = PolicyConfigManager()
    manager.load(policy_file)

    [config] = manager.get_sla_configurations()
    assert config.target_days == 4
    assert config.business_days_only is True
    [rule] = manager.get_escalation_rules()
    assert rule.days_threshold == 6


@pytest.mark.parametrize("content", [
    "sla_configurations: [",
    "- just a list",
    "sla_configurations:\n  - id: x\n    status: in-progress\n    name: X\n    target_days: 0\n",
])
def test_invalid_policy_files_are_rejected(tmp_path, content):
    path = tmp_path / "policy.yaml"
    path.write_text(content)
    with pytest.raises(ConfigurationException):
        PolicyConfigManager().load(path)


def test_reload_keeps_previous_policy_on_error(policy_file):
    manager = PolicyConfigManager()
    manager.load(policy_file)

    policy_file.write_text("escalation_rules: [{id: broken}]")
    assert manager.reload() is False
    assert manager.get_escalation_rules()[0].id == "esc-consent"

    policy_file.write_text(POLICY_YAML.replace("days_threshold: 6", "days_threshold: 8"))
    assert manager.reload() is True
    assert manager.get_escalation_rules()[0].days_threshold == 8


def test_saved_rules_are_persisted(policy_file):
    manager = PolicyConfigManager()
    manager.load(policy_file)

    rule = manager.get_escalation_rules()[0].model_copy(update={"id": "esc-second"})
    manager.save_escalation_rule(rule)

    document = yaml.safe_load(policy_file.read_text())
    assert [r["id"] for r in document["escalation_rules"]] == ["esc-consent", "esc-second"]

    reloaded = PolicyConfigManager()
    reloaded.load(policy_file)
    assert len(reloaded.get_escalation_rules()) == 2

    assert manager.delete_escalation_rule("esc-second") is True
    assert manager.delete_escalation_rule("esc-second") is False


def test_conflicting_sla_configurations_are_rejected():
    manager = PolicyConfigManager()
    duplicate = DEFAULT_SLA_CONFIGURATIONS[0].model_copy(update={"id": "sla-another"})

    with pytest.raises(ValidationException):
        manager.save_sla_configuration(duplicate)
    assert len(manager.get_sla_configurations()) == len(DEFAULT_SLA_CONFIGURATIONS)


def test_duplicate_ids_are_rejected():
    with pytest.raises(ValueError):
        LifecyclePolicy(escalation_rules=[
            {"id": "r", "name": "A", "status": "in-progress", "days_threshold": 1, "escalate_to": ["m"]},
            {"id": "r", "name": "B", "status": "issues-found", "days_threshold": 1, "escalate_to": ["m"]},
        ])
