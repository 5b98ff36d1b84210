"""
Sync orchestrator.

One run walks through:

    Start -> AuthExchange -> {per dataset kind: Fetch -> Load -> Reconcile -> Commit} -> Done

The credential is obtained once and passed to every dataset pipeline. Dataset
kinds are processed sequentially in configured order. Every failure is
reported to the error sink once and recorded in the run summary; nothing is
retried within the run, the next scheduled run is the recovery path.

Failure policies:
    isolate: each dataset kind has its own failure scope, so a failing kind
        does not prevent the others from being attempted.
    abort: the first failing kind ends the run and the remaining kinds are
        marked skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from contextlib import ExitStack
from datetime import datetime, timezone

from dlsync.core.catalog import decode_document, encode_document, reconcile
from dlsync.core.catalog.models import DatasetKind
from dlsync.core.config.models import DlsyncConfig
from dlsync.core.exceptions import CommitError
from dlsync.core.github.auth import CredentialProvider, build_credential_provider
from dlsync.core.github.contents import ContentsClient
from dlsync.core.github.models import Credential
from dlsync.core.reporting import ErrorSink, LoggingErrorSink
from dlsync.core.store import CountStore, load_counts, open_store
from dlsync.core.sync.models import DatasetResult, DatasetStatus, RunSummary

logger = logging.getLogger(__name__)


class SyncService:
    """
    Runs the fetch/load/reconcile/commit pipeline for each dataset kind.

    Collaborators default to the ones described by ``config`` and can be
    injected for testing.

    Example:
        >>> service = SyncService(load_config())
        >>> summary = service.run()
        >>> summary.ok
        True
    """

    def __init__(
        self,
        config: DlsyncConfig,
        *,
        credential_provider: CredentialProvider | None = None,
        contents: ContentsClient | None = None,
        store: CountStore | None = None,
        error_sink: ErrorSink | None = None,
    ) -> None:
        self.config = config
        self._credential_provider = credential_provider
        self._contents = contents
        self._store = store
        self.error_sink = error_sink if error_sink is not None else LoggingErrorSink()

    def run(self, kinds: Iterable[DatasetKind] | None = None) -> RunSummary:
        """
        Perform one full pass.

        Args:
            kinds: Dataset kinds to process (all configured kinds if None)

        Returns:
            RunSummary with one DatasetResult per selected kind
        """
        selected = list(kinds) if kinds is not None else list(self.config.datasets)
        summary = RunSummary()
        logger.info(
            f"Starting download sync for {', '.join(k.value for k in selected)} "
            f"(policy={self.config.failure_policy}, dry_run={self.config.dry_run})"
        )

        try:
            with ExitStack() as stack:
                provider = self._credential_provider or build_credential_provider(
                    self.config.github
                )
                credential = provider.obtain()

                contents = self._contents or ContentsClient.from_config(self.config.github)
                stack.enter_context(contents)
                store = stack.enter_context(self._store or open_store(self.config.store))

                self._run_datasets(selected, credential, contents, store, summary)
        except Exception as e:
            # Raised before any dataset ran, or while opening the store session
            self.error_sink.capture(e, stage="setup")
            summary.error = str(e)
            done = {result.kind for result in summary.results}
            summary.results.extend(
                DatasetResult(kind=kind, status=DatasetStatus.SKIPPED)
                for kind in selected
                if kind not in done
            )

        summary.finished_at = datetime.now(timezone.utc)
        self.error_sink.flush()

        if summary.ok:
            logger.info("Downloads updated successfully")
        else:
            logger.error("Download sync finished with failures")
        return summary

    def _run_datasets(
        self,
        kinds: list[DatasetKind],
        credential: Credential,
        contents: ContentsClient,
        store: CountStore,
        summary: RunSummary,
    ) -> None:
        aborted = False
        for kind in kinds:
            if aborted:
                logger.warning(f"Skipping {kind.value} after an earlier failure")
                summary.results.append(DatasetResult(kind=kind, status=DatasetStatus.SKIPPED))
                continue

            try:
                result = self.sync_dataset(kind, credential, contents, store)
            except Exception as e:
                self.error_sink.capture(e, dataset=kind.value)
                result = DatasetResult(
                    kind=kind,
                    status=DatasetStatus.FAILED,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                if self.config.failure_policy == "abort":
                    aborted = True

            summary.results.append(result)

    def sync_dataset(
        self,
        kind: DatasetKind,
        credential: Credential,
        contents: ContentsClient,
        store: CountStore,
    ) -> DatasetResult:
        """
        Fetch, reconcile and commit one dataset kind.

        Raises:
            FetchError: If the document cannot be fetched or decoded
            StoreError: If the counts cannot be loaded
            CommitError: If the repository rejects the update
        """
        spec = self.config.datasets[kind]

        versioned = contents.fetch(credential, spec.path)
        document = decode_document(versioned.raw, spec)
        counts = load_counts(store, spec.store_collection)
        reconciled = reconcile(document, counts)
        raw = encode_document(reconciled.document)

        result = DatasetResult(
            kind=kind,
            status=DatasetStatus.DRY_RUN,
            entries=len(reconciled.entries),
            matched=reconciled.matched,
            unmatched=list(reconciled.unmatched),
        )

        if self.config.dry_run:
            logger.info(f"{spec.label}: dry run, not committing {result.entries} entries")
            return result

        if self.config.skip_unchanged and raw == versioned.raw:
            logger.info(f"{spec.label} download numbers unchanged, nothing to commit")
            result.status = DatasetStatus.UNCHANGED
            return result

        try:
            commit = contents.commit(
                credential,
                spec.path,
                raw,
                versioned.sha,
                self.config.commit_message,
            )
        except CommitError as e:
            logger.error(f"Failed to commit updated {spec.label} download numbers: {e}")
            raise

        logger.info(f"{spec.label} download numbers updated and committed successfully")
        result.status = DatasetStatus.COMMITTED
        result.commit_sha = commit.commit_sha
        return result
