"""Retrieve ENA assembly reports and merge their sequence names into assemblies."""

import logging
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Callable, Optional

from .config import DOWNLOAD_DIR
from .entities import AssemblyEntity, SequenceEntity
from .errors import (
    ArtifactStorageError,
    DownloadFailedError,
    ReportNotFoundError,
    TransferError,
)
from .merge import add_ena_sequence_names
from .report import ENAAssemblyReportReader
from .retry import RetryPolicy, call_with_retry
from .transfer import ENABrowser, build_browser

logger = logging.getLogger(__name__)

# Failures of a single download attempt that are worth another try
RETRYABLE_ERRORS = (TransferError, OSError)


class ENAAssemblyDataSource:
    """Looks up assemblies in the ENA archive."""

    def __init__(
        self,
        browser_factory: Callable[[], ENABrowser] = build_browser,
        reader_factory: Callable[..., ENAAssemblyReportReader] = ENAAssemblyReportReader,
        download_dir: Optional[Path] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], None]] = None,
        add_missing_sequences: bool = False,
    ):
        """
        Args:
            browser_factory: Builds an unconnected archive session per lookup.
            reader_factory: Builds a report reader from (stream, accession).
            download_dir: Where per-lookup working directories are created.
            retry_policy: Attempt ceiling and backoff for report downloads.
            sleep: Backoff wait function; tests inject a recorder here.
            add_missing_sequences: Whether sequences only present in ENA are
                appended to the enriched assembly.
        """
        self.browser_factory = browser_factory
        self.reader_factory = reader_factory
        self.download_dir = Path(download_dir) if download_dir else Path(DOWNLOAD_DIR)
        self.retry_policy = retry_policy or RetryPolicy()
        self.sleep = sleep
        self.add_missing_sequences = add_missing_sequences

    def get_assembly_by_accession(
        self,
        accession: str,
        cancel: Optional[threading.Event] = None,
    ) -> Optional[AssemblyEntity]:
        """
        Fetch and parse the ENA sequence report of an assembly.

        Returns None when the report is absent upstream, cannot be
        downloaded, or cannot be parsed. Raises TransferError if the archive
        cannot be reached at all, and ArtifactStorageError if the download
        directory is unusable.
        """
        browser = self.browser_factory()
        browser.connect()
        try:
            download_path = self.download_assembly_report(browser, accession, cancel)
            if download_path is None:
                return None

            try:
                with open(download_path, "rb") as stream:
                    reader = self.reader_factory(stream, accession)
                    assembly = reader.extract_assembly()
            finally:
                _remove_artifact(download_path, accession)

            logger.info(
                "ENA: Number of chromosomes in %s : %d",
                accession, len(assembly.chromosomes or []),
            )
            return assembly
        except ArtifactStorageError:
            raise
        except Exception as e:
            logger.warning(
                "Could not fetch Assembly Report from ENA for accession %s: %s", accession, e,
            )
            return None
        finally:
            try:
                browser.disconnect()
            except Exception as e:
                logger.warning(
                    "Error while trying to disconnect from ENA (assembly: %s): %s", accession, e,
                )

    def download_assembly_report(
        self,
        browser: ENABrowser,
        accession: str,
        cancel: Optional[threading.Event] = None,
    ) -> Optional[Path]:
        """
        Download the sequence report of an assembly, retrying failed attempts.

        Each call writes into its own working directory under download_dir,
        so concurrent lookups never share a file. Returns the local path, or
        None if the report does not exist upstream or every attempt failed.
        The caller removes the returned file and its directory.
        """
        workdir = self._make_workdir(accession)

        def attempt() -> Path:
            dir_path = browser.get_assembly_dir_path(accession)
            remote_file = browser.get_assembly_report_file(dir_path, accession)
            local_path = workdir / remote_file.name
            try:
                success = browser.download_file(
                    dir_path + remote_file.name, local_path, remote_file.size, cancel=cancel,
                )
            except BaseException:
                local_path.unlink(missing_ok=True)
                raise
            if not success:
                local_path.unlink(missing_ok=True)
                raise DownloadFailedError(
                    f"Incomplete download of {remote_file.name} for {accession}"
                )
            return local_path

        try:
            path = call_with_retry(
                attempt,
                self.retry_policy,
                retry_on=RETRYABLE_ERRORS,
                sleep=self.sleep,
                cancel=cancel,
                description=f"ENA assembly report download for {accession}",
            )
        except ReportNotFoundError as e:
            logger.warning("ENA assembly report not found for accession %s: %s", accession, e)
            _remove_workdir(workdir, accession)
            return None
        except RETRYABLE_ERRORS as e:
            logger.warning(
                "ENA assembly report could not be downloaded for accession %s: %s", accession, e,
            )
            _remove_workdir(workdir, accession)
            return None
        except BaseException:
            _remove_workdir(workdir, accession)
            raise

        logger.info("ENA assembly report downloaded successfully for accession %s", accession)
        return path

    def _make_workdir(self, accession: str) -> Path:
        try:
            self.download_dir.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=f"{accession}-", dir=self.download_dir))
        except OSError as e:
            raise ArtifactStorageError(
                f"Cannot create download directory under {self.download_dir}: {e}"
            ) from e

    def add_ena_sequence_names_to_assembly(
        self,
        assembly: Optional[AssemblyEntity],
        cancel: Optional[threading.Event] = None,
    ) -> Optional[list[SequenceEntity]]:
        """
        Add ENA sequence names to the chromosomes and scaffolds of an assembly.

        Modifies the assembly in place. Does nothing (and touches no network)
        if the assembly is None or already has every ENA name. If ENA has no
        report for the assembly, it is left unchanged. With
        ``add_missing_sequences`` the ENA-only sequences are appended after
        the assembly's own, none of which is ever removed.

        Returns:
            The reconciled sequence list, or None if no merge took place.
        """
        if assembly is None or self.has_all_ena_sequence_names(assembly):
            return None

        ena_assembly = self.get_assembly_by_accession(assembly.insdc_accession, cancel=cancel)
        if ena_assembly is None:
            logger.info("No ENA sequence names available for %s", assembly.insdc_accession)
            return None

        merged = add_ena_sequence_names(
            ena_assembly.chromosomes or [],
            assembly.chromosomes or [],
        )
        if self.add_missing_sequences:
            existing = list(assembly.chromosomes or [])
            known = {sequence.insdc_accession for sequence in existing}
            additions = [sequence for sequence in merged if sequence.insdc_accession not in known]
            for sequence in additions:
                sequence.assembly = assembly
            # Duplicate target accessions stay; only lookups are deduplicated
            assembly.chromosomes = existing + additions
        return merged

    @staticmethod
    def has_all_ena_sequence_names(assembly: AssemblyEntity) -> bool:
        """True if every sequence carries an ENA name (or there are none)."""
        return all(
            sequence.ena_sequence_name is not None
            for sequence in assembly.chromosomes or []
        )


def _remove_artifact(path: Path, accession: str) -> None:
    """Delete a downloaded report and the working directory holding it."""
    try:
        path.unlink(missing_ok=True)
        path.parent.rmdir()
    except OSError as e:
        logger.warning("Could not remove downloaded report %s (assembly: %s): %s", path, accession, e)


def _remove_workdir(workdir: Path, accession: str) -> None:
    try:
        shutil.rmtree(workdir)
    except OSError as e:
        logger.warning("Could not remove %s (assembly: %s): %s", workdir, accession, e)
