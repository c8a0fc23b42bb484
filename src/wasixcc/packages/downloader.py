"""Release downloader with progress tracking.

This module looks up GitHub releases, downloads their assets and unpacks
the archives.
"""

import os
import tarfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import requests
from tqdm import tqdm

from ..errors import WasixccError

GITHUB_API = "https://api.github.com"

USER_AGENT = "wasixcc"


class DownloadError(WasixccError):
    """Raised when a download fails."""

    pass


class ExtractionError(WasixccError):
    """Raised when archive extraction fails."""

    pass


class InvalidTagError(WasixccError, ValueError):
    """Raised when a release tag specification is not recognized."""

    pass


@dataclass(frozen=True)
class TagSpec:
    """Release selector: the latest release or a specific tag.

    Attributes:
        tag: Tag name, or None for the latest release
    """

    tag: Optional[str] = None

    @classmethod
    def parse(cls, value: str) -> "TagSpec":
        """Parse 'latest', a 'v...' tag or a 'version_...' tag.

        Raises:
            InvalidTagError: If the value is none of those
        """
        if value == "latest":
            return cls()
        if value.startswith("v") or value.startswith("version_"):
            return cls(value)
        raise InvalidTagError(
            f"Invalid tag specification: `{value}`. "
            "Use 'latest', a tag starting with 'v', or 'version_XXX'."
        )

    @property
    def url_postfix(self) -> str:
        return "latest" if self.tag is None else f"tags/{self.tag}"

    def __str__(self) -> str:
        return self.tag or "latest"


@dataclass
class ReleaseAsset:
    """A downloadable file attached to a release."""

    name: str
    browser_download_url: str


class PackageDownloader:
    """Downloads and extracts release assets with progress tracking."""

    def __init__(self, chunk_size: int = 8192, session: Optional[requests.Session] = None):
        """Initialize downloader.

        Args:
            chunk_size: Size of chunks for downloading
            session: HTTP session (a new one is created when omitted)
        """
        self.chunk_size = chunk_size
        self.session = session or requests.Session()
        self.session.headers.update(self._default_headers())

    @staticmethod
    def _default_headers() -> Dict[str, str]:
        headers = {"User-Agent": USER_AGENT}
        # An API token avoids 403s when the GitHub API throttles our IP
        token = os.environ.get("GITHUB_TOKEN", "").strip()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def get_release_assets(self, repo: str, tag_spec: TagSpec) -> List[ReleaseAsset]:
        """Get the assets of a GitHub release.

        Args:
            repo: Repository as 'owner/name'
            tag_spec: Release to look up

        Returns:
            List of release assets

        Raises:
            DownloadError: If the release info cannot be retrieved
        """
        release_url = f"{GITHUB_API}/repos/{repo}/releases/{tag_spec.url_postfix}"
        print(f"Retrieving release info from {release_url} ...")

        try:
            response = self.session.get(release_url, timeout=30)
            response.raise_for_status()
            release = response.json()
        except requests.RequestException as e:
            raise DownloadError(f"Could not download release info from {release_url}: {e}")
        except ValueError as e:
            raise DownloadError(f"Could not deserialize release info: {e}")

        return [
            ReleaseAsset(name=asset["name"], browser_download_url=asset["browser_download_url"])
            for asset in release.get("assets", [])
        ]

    def download(self, url: str, dest_path: Path, show_progress: bool = True) -> Path:
        """Download a file from a URL.

        Args:
            url: URL to download from
            dest_path: Destination file path
            show_progress: Whether to show progress bar

        Returns:
            Path to the downloaded file

        Raises:
            DownloadError: If download fails
        """
        dest_path = Path(dest_path)
        dest_path.parent.mkdir(parents=True, exist_ok=True)

        # Use temporary file during download
        temp_file = dest_path.with_suffix(dest_path.suffix + ".tmp")

        try:
            response = self.session.get(url, stream=True, timeout=30)
            response.raise_for_status()

            total_size = int(response.headers.get("content-length", 0))

            progress_bar = None
            if show_progress and total_size > 0:
                progress_bar = tqdm(
                    total=total_size,
                    unit="B",
                    unit_scale=True,
                    unit_divisor=1024,
                    desc=f"Downloading {dest_path.name}",
                )

            with open(temp_file, "wb") as f:
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    if chunk:
                        f.write(chunk)
                        if progress_bar:
                            progress_bar.update(len(chunk))

            if progress_bar:
                progress_bar.close()

            if dest_path.exists():
                dest_path.unlink()
            temp_file.rename(dest_path)

            return dest_path

        except requests.RequestException as e:
            if temp_file.exists():
                temp_file.unlink()
            raise DownloadError(f"Failed to download {url}: {e}")

        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise

    def extract_archive(self, archive_path: Path, dest_dir: Path) -> Path:
        """Extract a .tar.gz/.tar.bz2/.tar.xz or .zip archive.

        Returns:
            Path to the destination directory

        Raises:
            ExtractionError: If extraction fails
        """
        archive_path = Path(archive_path)
        dest_dir = Path(dest_dir)

        if not archive_path.exists():
            raise ExtractionError(f"Archive not found: {archive_path}")

        dest_dir.mkdir(parents=True, exist_ok=True)

        try:
            if archive_path.suffix == ".zip":
                with zipfile.ZipFile(archive_path, "r") as zip_file:
                    zip_file.extractall(dest_dir)
            elif archive_path.name.endswith((".tar.gz", ".tgz", ".tar.bz2", ".tar.xz")):
                with tarfile.open(archive_path, "r:*") as tar:
                    tar.extractall(dest_dir)
            else:
                raise ExtractionError(f"Unsupported archive format: {archive_path.suffix}")
        except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
            raise ExtractionError(f"Failed to extract {archive_path}: {e}")

        return dest_dir

    def download_and_extract(self, asset: ReleaseAsset, work_dir: Path, extract_dir: Path) -> Path:
        """Download a release asset into work_dir and unpack it into extract_dir."""
        print(f"Downloading asset '{asset.name}' from url '{asset.browser_download_url}'...")
        archive_path = self.download(asset.browser_download_url, work_dir / asset.name)
        return self.extract_archive(archive_path, extract_dir)
