"""Diagnosis façade: resolution plus integrity checks in one ordered report."""

import logging
from pathlib import Path
from typing import Optional, Union

from ..core.folder import MinecraftFolder
from ..exceptions import BrokenInheritanceChain, CyclicInheritance, DescriptorNotFound
from ..versions.rules import Platform
from ..versions.store import VersionStore
from .integrity import IntegrityChecker
from .models import DiagnosisReport, Issue, IssueKind

logger = logging.getLogger(__name__)


class Diagnosis:
    def __init__(self, store: VersionStore, checker: Optional[IntegrityChecker] = None,
                 verify_assets: bool = False):
        self.store = store
        self.checker = checker or IntegrityChecker(store.platform)
        self.verify_assets = verify_assets

    async def diagnose(self, version_id: str) -> DiagnosisReport:
        """Report every problem of ``version_id``.

        Issue order: version json/jar, inheritance chain, libraries in
        descriptor order, asset index, asset objects.
        """
        root = self.store.root
        report = DiagnosisReport(version=version_id, root=root.root)

        try:
            descriptor = await self.store.resolve(version_id)
        except DescriptorNotFound as e:
            report.issues.append(Issue(kind=IssueKind.MISSING_VERSION_JSON, entity=version_id,
                                       path=root.version_json(version_id), detail=e.message))
            return report
        except BrokenInheritanceChain as e:
            report.issues.append(Issue(kind=IssueKind.BROKEN_INHERITANCE_CHAIN, entity=e.missing,
                                       path=root.version_json(e.missing), detail=e.message))
            return report
        except CyclicInheritance as e:
            report.issues.append(Issue(kind=IssueKind.BROKEN_INHERITANCE_CHAIN, entity=e.chain[-1],
                                       detail=e.message))
            return report

        report.issues.extend(await self.checker.check(root, descriptor))
        report.issues.extend(await self.checker.check_assets(root, descriptor, verify=self.verify_assets))

        if report.issues:
            logger.info("%s: %d issue(s) found", version_id, len(report.issues))
        return report


async def diagnose(root: Union[str, Path, MinecraftFolder], version_id: str,
                   platform: Optional[Platform] = None, concurrency: int = 8,
                   verify_assets: bool = False) -> DiagnosisReport:
    """Diagnose ``version_id`` under ``root``."""
    store = VersionStore(root, platform)
    checker = IntegrityChecker(store.platform, concurrency)
    return await Diagnosis(store, checker, verify_assets).diagnose(version_id)
