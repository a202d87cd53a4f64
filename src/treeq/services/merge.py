"""MergeService — fold overlay documents onto a base document."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from treeq.domain.errors import TreeqError
from treeq.domain.merge import merge, parse_policy, parse_policy_override
from treeq.infrastructure.formats import read_document, resolve_format, write_document
from treeq.services.base import BaseService
from treeq.services.result import ServiceResult
from treeq.services.stages import record, reported, stage

logger = logging.getLogger(__name__)


class MergeService(BaseService):
    """Merge documents with a default policy and per-path overrides."""

    @reported("merge")
    def merge(
        self,
        base: Path,
        overlays: Sequence[Path],
        *,
        policy: str | None = None,
        policy_paths: Sequence[str] = (),
        output_format: str | None = None,
    ) -> ServiceResult:
        """Merge *overlays* onto *base*, in order.

        *policy_paths* entries look like ``PATH=POLICY``. The merged tree is
        rendered in *output_format*, defaulting to the base's format.
        """
        op = "merge"
        try:
            default_policy = (
                parse_policy(policy) if policy is not None else self.settings.merge.policy
            )
            overrides = [parse_policy_override(text) for text in policy_paths]
            out_fmt = self._output_format(output_format, resolve_format(None, base))
            with stage("read"):
                base_value = read_document(base)
                overlay_values = [read_document(path) for path in overlays]
            with stage("merge"):
                merged = merge(
                    base_value,
                    overlay_values,
                    default_policy,
                    overrides,
                    max_depth=self.max_depth,
                )
                record(
                    overlays=len(overlays),
                    overrides=len(overrides),
                    policy=default_policy.value,
                    max_depth=self.max_depth,
                )
            with stage("render"):
                document = write_document(merged, out_fmt)
        except TreeqError as exc:
            return self._failure(op, exc)

        logger.debug("Merged %s with %d overlays", base, len(overlays))
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "base": str(base),
                "overlays": [str(path) for path in overlays],
                "policy": default_policy.value,
                "overrides": [
                    {"path": str(o.path), "policy": o.policy.value} for o in overrides
                ],
                "output_format": out_fmt.value,
                "value": merged,
                "document": document,
            },
        )
