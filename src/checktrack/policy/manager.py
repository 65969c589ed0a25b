"""
Policy Configuration Manager
============================

Loads the lifecycle policy from YAML, hot-reloads it with watchdog and
persists validated administrative edits back to the file.

Readers always get a complete snapshot: a cycle that starts before a
reload keeps the policy it started with.
"""

import os
import tempfile
import threading
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from checktrack.core.exceptions import ConfigurationException, ValidationException
from checktrack.escalation.application import IEscalationRuleProvider
from checktrack.escalation.domain import EscalationRule
from checktrack.policy.models import LifecyclePolicy
from checktrack.shared.infrastructure.logging import get_logger
from checktrack.sla.application import ISLAConfigProvider
from checktrack.sla.domain import SLAConfiguration

logger = get_logger(__name__)


def _validation_message(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in e['loc']) or 'policy'}: {e['msg']}"
        for e in error.errors()
    )


class PolicyFileHandler(FileSystemEventHandler):
    """Watchdog event handler for policy file changes."""

    def __init__(self, manager: "PolicyConfigManager", policy_path: Path):
        self.manager = manager
        self.policy_path = policy_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.policy_path.resolve():
            logger.info("Policy file changed", extra={"path": str(event.src_path)})
            self.manager.reload()

    on_created = on_modified

    def on_moved(self, event):
        # Atomic saves land as a rename onto the policy path.
        if not event.is_directory and Path(event.dest_path).resolve() == self.policy_path.resolve():
            self.manager.reload()


class PolicyConfigManager(ISLAConfigProvider, IEscalationRuleProvider):
    """
    Thread-safe lifecycle policy store with hot-reload support.

    Without a path it serves the built-in defaults and keeps edits in memory.
    """

    def __init__(self, policy: Optional[LifecyclePolicy] = None):
        self._policy = policy or LifecyclePolicy()
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    # ========== Loading ==========

    def load(self, path: Path) -> LifecyclePolicy:
        """
        Initial load.

        Raises:
            ConfigurationException: when the file exists but is not a valid policy
        """
        self._path = Path(path)
        policy = self._load_from_file(self._path)
        with self._lock:
            self._policy = policy
        logger.info(
            "Lifecycle policy loaded",
            extra={
                "path": str(self._path),
                "sla_configurations": len(policy.sla_configurations),
                "escalation_rules": len(policy.escalation_rules),
            }
        )
        return policy

    def _load_from_file(self, path: Path) -> LifecyclePolicy:
        if not path.exists():
            logger.warning("Policy file not found, using defaults", extra={"path": str(path)})
            return LifecyclePolicy()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Policy file {path} is not valid YAML: {e}")

        if not isinstance(data, dict):
            raise ConfigurationException(f"Policy file {path} must contain a mapping")

        try:
            return LifecyclePolicy(**data)
        except ValidationError as e:
            raise ConfigurationException(
                f"Policy file {path} is invalid: {_validation_message(e)}"
            )

    def reload(self) -> bool:
        """Reload from file; the previous policy stays active on failure."""
        if self._path is None:
            return False

        try:
            policy = self._load_from_file(self._path)
        except (ConfigurationException, OSError) as e:
            logger.error("Failed to reload lifecycle policy", extra={"error": str(e)})
            return False

        with self._lock:
            self._policy = policy
        logger.info("Lifecycle policy reloaded")
        return True

    # ========== Watching ==========

    def start_watching(self) -> None:
        """Start watching the policy file; skipped when there is no file."""
        if self._path is None or not self._path.exists():
            logger.info("No policy file to watch, using static policy")
            return

        try:
            self._observer = Observer()
            self._observer.schedule(
                PolicyFileHandler(self, self._path),
                str(self._path.parent),
                recursive=False
            )
            self._observer.start()
            logger.info("Watching policy file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static policy", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    # ========== Snapshots ==========

    @property
    def policy(self) -> LifecyclePolicy:
        with self._lock:
            return self._policy

    def get_sla_configurations(self) -> List[SLAConfiguration]:
        return list(self.policy.sla_configurations)

    def get_escalation_rules(self) -> List[EscalationRule]:
        return list(self.policy.escalation_rules)

    # ========== Administration ==========

    def save_sla_configuration(self, configuration: SLAConfiguration) -> SLAConfiguration:
        current = self.policy
        configurations = [c for c in current.sla_configurations if c.id != configuration.id]
        configurations.append(configuration)
        self._replace(sla_configurations=configurations, escalation_rules=current.escalation_rules)
        return configuration

    def save_escalation_rule(self, rule: EscalationRule) -> EscalationRule:
        current = self.policy
        rules = [r for r in current.escalation_rules if r.id != rule.id]
        rules.append(rule)
        self._replace(sla_configurations=current.sla_configurations, escalation_rules=rules)
        return rule

    def delete_escalation_rule(self, rule_id: str) -> bool:
        current = self.policy
        rules = [r for r in current.escalation_rules if r.id != rule_id]
        if len(rules) == len(current.escalation_rules):
            return False
        self._replace(sla_configurations=current.sla_configurations, escalation_rules=rules)
        return True

    def _replace(self, **sections) -> None:
        """Validate the edited policy, persist it, then swap it in."""
        try:
            policy = LifecyclePolicy(**sections)
        except ValidationError as e:
            raise ValidationException(_validation_message(e))

        if self._path is not None:
            self._write(policy)

        with self._lock:
            self._policy = policy
        logger.info("Lifecycle policy updated")

    def _write(self, policy: LifecyclePolicy) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self._path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                yaml.safe_dump(policy.to_document(), f, sort_keys=False)
            os.replace(tmp_path, self._path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise ConfigurationException(f"Could not write policy file {self._path}: {e}")
