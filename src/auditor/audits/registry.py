# src/auditor/audits/registry.py
import importlib
import logging
import pkgutil
from typing import Dict, List, Optional

from .core import Audit

logger = logging.getLogger(__name__)


class AuditRegistry:
    """
    Central registry of audits.

    Dynamically discovers modules in the 'auditor.audits.rules' package that
    expose an `AUDIT` attribute implementing the Audit protocol, and indexes
    them by their meta name.
    """

    _audits: Dict[str, Audit] = {}
    _loaded: bool = False

    @classmethod
    def discover(cls) -> None:
        """
        Registers every audit found in the 'auditor.audits.rules' package.

        Modules that fail to import are logged and skipped. When two modules
        declare the same audit name, the first one wins.
        """
        if cls._loaded:
            return

        try:
            import auditor.audits.rules as rules_pkg
        except ImportError as e:
            logger.error(f"Could not find rules package: {e}")
            return

        for _, name, _ in sorted(pkgutil.iter_modules(rules_pkg.__path__), key=lambda m: m[1]):
            full_name = f"auditor.audits.rules.{name}"
            try:
                module = importlib.import_module(full_name)
            except Exception as e:
                logger.error(f"Error loading audit module {name}: {e}")
                continue

            audit = getattr(module, "AUDIT", None)
            if audit is None:
                continue
            if not isinstance(audit, Audit):
                logger.warning(f"Module {full_name} exposes AUDIT that does not implement meta()/run()")
                continue
            cls.register(audit)

        cls._loaded = True

    @classmethod
    def register(cls, audit: Audit) -> bool:
        """Adds an audit. Returns False if the name is already taken."""
        name = audit.meta().name
        if name in cls._audits:
            logger.warning(f"Duplicate audit '{name}' ignored")
            return False
        cls._audits[name] = audit
        logger.debug(f"Audit loaded: {name}")
        return True

    @classmethod
    def get(cls, name: str) -> Optional[Audit]:
        cls.discover()
        return cls._audits.get(name)

    @classmethod
    def get_all(cls) -> List[Audit]:
        cls.discover()
        return [cls._audits[name] for name in sorted(cls._audits)]

    @classmethod
    def get_names(cls) -> List[str]:
        cls.discover()
        return sorted(cls._audits)

    @classmethod
    def reset(cls) -> None:
        """Forgets all registrations; the next lookup rediscovers."""
        cls._audits = {}
        cls._loaded = False
