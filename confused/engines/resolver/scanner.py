"""ManifestResolver — one parse + registry pass over a manifest."""

from __future__ import annotations

import httpx
import structlog

from confused.core.pool import WorkerPool
from confused.engines.resolver.models import ManifestSource, PackageReference, ScanKind, ScanResult
from confused.engines.resolver.registry import resolver_for, to_ecosystem
from confused.engines.resolver.resolvers.base import RegistryResolver
from confused.engines.resolver.safe_space import remove_safe

log = structlog.get_logger("confused.engine")


class ManifestResolver:
    """Parse a manifest, check each registry reference, build a ScanResult.

    Shared by every orchestrator. The returned result is finalized.
    """

    def __init__(self, client: httpx.AsyncClient, safe_spaces: list[str] | None = None) -> None:
        self._client = client
        self._safe_spaces = list(safe_spaces or [])

    async def resolve(
        self,
        source: ManifestSource,
        kind: ScanKind,
        *,
        workers: int = 1,
    ) -> ScanResult:
        """Resolve *source*; with ``workers > 1`` lookups run on a WorkerPool.

        Raises UnsupportedEcosystem for an unknown ecosystem name.
        """
        ecosystem = to_ecosystem(source.ecosystem)
        parser, resolver = resolver_for(ecosystem, self._client)
        result = ScanResult(
            target=source.target,
            kind=kind,
            ecosystem=ecosystem.value,
            metadata=dict(source.metadata),
        )

        refs = parser.parse(source.content)
        to_check = [r for r in refs if r.is_registry]
        trusted = [r.identifier for r in refs if not r.is_registry]

        log.debug(
            "resolver.manifest_parsed",
            target=source.target,
            ecosystem=ecosystem.value,
            packages=len(refs),
            trusted=len(trusted),
        )

        if workers > 1 and len(to_check) > 1:
            available = await self._check_pooled(resolver, to_check, workers)
        else:
            available = [await resolver.is_available(ref) for ref in to_check]

        raw_vulnerable = [ref.identifier for ref, ok in zip(to_check, available) if not ok]
        vulnerable = remove_safe(raw_vulnerable, self._safe_spaces)

        for ref, ok in zip(to_check, available):
            if ok:
                result.add_safe(ref.identifier)
        for ident in vulnerable:
            result.add_vulnerable(ident)

        result.metadata["trusted_packages"] = trusted
        result.metadata["safe_space_filtered"] = len(raw_vulnerable) - len(vulnerable)
        result.finalize()
        return result

    @staticmethod
    async def _check_pooled(
        resolver: RegistryResolver,
        refs: list[PackageReference],
        workers: int,
    ) -> list[bool]:
        available: list[bool] = [False] * len(refs)

        def _job(index: int, ref: PackageReference):
            async def _run() -> None:
                available[index] = await resolver.is_available(ref)

            return _run

        async with WorkerPool(workers) as pool:
            for i, ref in enumerate(refs):
                await pool.submit(_job(i, ref))
        return available
