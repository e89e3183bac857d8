import base64
import logging
import threading
from typing import Any
from urllib.parse import quote

import requests

from ..config import Config
from .exceptions import (
    GitHubAPIError,
    GitHubError,
    GitHubNetworkError,
    GitHubNotFoundError,
    error_for_status,
)
from .models import (
    BinaryContent,
    ExistingFile,
    FileLookup,
    MissingFile,
    RemoteFile,
    TextContent,
    TreeEntry,
    VaultFile,
)

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"
REPOSITORY_DESCRIPTION = "Vault sync repository"

# Largest UTF-8 encoded text, in bytes, embedded inline in a tree entry;
# bigger files are uploaded as blobs first and referenced by sha.
INLINE_CONTENT_LIMIT = 100_000


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_base64(payload: str) -> bytes:
    """Decode base64 as served by the contents endpoint (wrapped at 60 cols)."""
    return base64.b64decode("".join(payload.split()))


class GitHubClient:
    """Blocking client for the GitHub REST and Git Data APIs.

    Every call is independent: the client keeps no state besides the
    configuration snapshot and one ``requests.Session`` per thread.
    """

    def __init__(self, config: Config):
        self.config = config
        self.branch = config.branch
        self._thread_local = threading.local()
        self.repo_url = self._get_repo_url()

    @property
    def session(self) -> requests.Session:
        """The session bound to the calling thread."""
        return self._get_session()

    def _get_repo_url(self) -> str:
        owner = quote(self.config.github_username, safe="")
        repo = quote(self.config.repository, safe="")
        return f"{self.config.api_url}/repos/{owner}/{repo}"

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"Bearer {self.config.github_token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "Content-Type": "application/json",
            }
        )
        return session

    def _contents_url(self, path: str) -> str:
        return f"{self.repo_url}/contents/{quote(path, safe='/')}"

    def _request(
        self,
        method: str,
        url: str,
        body: dict | None = None,
        params: dict | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            GitHubNetworkError: If no response was received.
            GitHubAPIError: If the status is 400 or above. The message is
                GitHub's ``message`` field, or ``HTTP {status}``. Also
                raised when a success response carries a body that is
                not JSON.
        """
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(
                method,
                url,
                json=body,
                params=params,
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise GitHubNetworkError(f"Network error: {e}") from e

        if response.status_code >= 400:
            message = None
            try:
                payload = response.json()
                if isinstance(payload, dict):
                    message = payload.get("message")
            except ValueError:
                pass
            raise error_for_status(
                response.status_code,
                message or f"HTTP {response.status_code}",
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(
                response.status_code, "Invalid JSON response"
            ) from e

    # ------------------------------------------------------------------
    # Repository
    # ------------------------------------------------------------------

    def verify_access(self) -> bool:
        """Return True if the repository is reachable with the current token."""
        try:
            self._request("GET", self.repo_url)
            return True
        except GitHubError as e:
            logger.debug("Repository access check failed: %s", e)
            return False

    def ensure_repository(self) -> bool:
        """Make sure the repository exists, creating it as private if needed.

        Returns:
            True if the repository exists or was created, False otherwise.
        """
        try:
            self._request("GET", self.repo_url)
            return True
        except GitHubError as e:
            logger.info(
                "Repository %s not reachable (%s), trying to create it",
                self.config.repository,
                e,
            )

        try:
            self._request(
                "POST",
                f"{self.config.api_url}/user/repos",
                {
                    "name": self.config.repository,
                    "private": True,
                    "auto_init": True,
                    "description": REPOSITORY_DESCRIPTION,
                },
            )
        except GitHubError as e:
            logger.error(
                "Failed to create repository %s: %s",
                self.config.repository,
                e,
            )
            return False

        logger.info("Created private repository %s", self.config.repository)
        return True

    # ------------------------------------------------------------------
    # Git Data reads
    # ------------------------------------------------------------------

    def get_latest_commit_sha(self) -> str | None:
        """Return the branch head commit, or None if the branch has no history.

        An empty repository answers 409 and a missing branch 404; both mean
        "no history yet". Any other failure is raised.
        """
        try:
            ref = self._request(
                "GET", f"{self.repo_url}/git/refs/heads/{self.branch}"
            )
        except GitHubNotFoundError:
            return None
        except GitHubAPIError as e:
            if e.status_code == 409:
                return None
            raise
        return ref["object"]["sha"]

    def get_tree_sha(self, commit_sha: str) -> str:
        """Return the root tree id of a commit."""
        commit = self._request(
            "GET", f"{self.repo_url}/git/commits/{commit_sha}"
        )
        return commit["tree"]["sha"]

    def list_tree(
        self, tree_sha: str, recursive: bool = True
    ) -> list[RemoteFile]:
        """List every blob under a tree; directory entries are dropped."""
        params = {"recursive": "1"} if recursive else None
        response = self._request(
            "GET", f"{self.repo_url}/git/trees/{tree_sha}", params=params
        )
        if response.get("truncated"):
            logger.warning(
                "Tree %s listing was truncated by GitHub; some files are missing",
                tree_sha,
            )
        return [
            RemoteFile(path=item["path"], sha=item["sha"])
            for item in response.get("tree", [])
            if item.get("type") == "blob"
        ]

    def list_remote_files(self) -> list[RemoteFile]:
        """List every blob on the branch head; empty for a branch with no history."""
        commit_sha = self.get_latest_commit_sha()
        if commit_sha is None:
            return []
        return self.list_tree(self.get_tree_sha(commit_sha))

    def get_blob(self, blob_sha: str) -> bytes:
        """Fetch a blob's raw bytes by id."""
        blob = self._request("GET", f"{self.repo_url}/git/blobs/{blob_sha}")
        return decode_base64(blob.get("content", ""))

    # ------------------------------------------------------------------
    # Contents endpoint
    # ------------------------------------------------------------------

    def get_file_content(
        self, path: str, ref: str | None = None
    ) -> bytes | None:
        """Return a file's bytes from the branch, or None if unavailable.

        Files over 1 MB come back from the contents endpoint with
        ``encoding: none``; those are fetched through the blob endpoint.
        """
        try:
            response = self._request(
                "GET",
                self._contents_url(path),
                params={"ref": ref or self.branch},
            )
            if not isinstance(response, dict):
                # A directory listing
                return None
            encoding = response.get("encoding")
            if encoding == "base64":
                return decode_base64(response.get("content", ""))
            if encoding == "none" and response.get("sha"):
                return self.get_blob(response["sha"])
            return None
        except GitHubError as e:
            logger.warning("Could not fetch %s: %s", path, e)
            return None

    def get_file_sha(self, path: str, ref: str | None = None) -> FileLookup:
        """Look up the current content id of *path* on the branch."""
        try:
            response = self._request(
                "GET",
                self._contents_url(path),
                params={"ref": ref or self.branch},
            )
        except GitHubNotFoundError:
            return MissingFile()
        if not isinstance(response, dict) or "sha" not in response:
            return MissingFile()
        return ExistingFile(sha=response["sha"])

    def put_file(
        self, path: str, content: bytes | str, message: str
    ) -> bool:
        """Create or update a single file with its own commit."""
        data = content.encode("utf-8") if isinstance(content, str) else content
        try:
            body: dict[str, str] = {
                "message": message,
                "content": encode_base64(data),
                "branch": self.branch,
            }
            match self.get_file_sha(path):
                case ExistingFile(sha=sha):
                    body["sha"] = sha
                case MissingFile():
                    pass

            self._request("PUT", self._contents_url(path), body)
            return True
        except GitHubError as e:
            logger.error("Failed to upload file %s: %s", path, e)
            return False

    def delete_file(self, path: str, message: str) -> bool:
        """Delete a single file. Succeeds without a write if it is already gone."""
        try:
            match self.get_file_sha(path):
                case MissingFile():
                    return True
                case ExistingFile(sha=sha):
                    self._request(
                        "DELETE",
                        self._contents_url(path),
                        {
                            "message": message,
                            "sha": sha,
                            "branch": self.branch,
                        },
                    )
            return True
        except GitHubError as e:
            logger.error("Failed to delete file %s: %s", path, e)
            return False

    # ------------------------------------------------------------------
    # Git Data writes
    # ------------------------------------------------------------------

    def create_blob(self, data: bytes) -> str:
        """Upload raw bytes as a blob and return its id."""
        response = self._request(
            "POST",
            f"{self.repo_url}/git/blobs",
            {"content": encode_base64(data), "encoding": "base64"},
        )
        return response["sha"]

    def create_tree(
        self, base_tree_sha: str | None, entries: list[TreeEntry]
    ) -> str:
        """Create a tree layered on *base_tree_sha* and return its id."""
        body: dict[str, Any] = {
            "tree": [entry.to_payload() for entry in entries]
        }
        if base_tree_sha:
            body["base_tree"] = base_tree_sha
        response = self._request("POST", f"{self.repo_url}/git/trees", body)
        return response["sha"]

    def create_commit(
        self, message: str, tree_sha: str, parent_sha: str | None
    ) -> str:
        """Create a commit; ``parents`` is omitted for the first commit."""
        body: dict[str, Any] = {"message": message, "tree": tree_sha}
        if parent_sha:
            body["parents"] = [parent_sha]
        response = self._request(
            "POST", f"{self.repo_url}/git/commits", body
        )
        return response["sha"]

    def update_branch_ref(self, commit_sha: str) -> bool:
        """Force-move the branch to *commit_sha*, creating the ref if needed."""
        try:
            self._request(
                "PATCH",
                f"{self.repo_url}/git/refs/heads/{self.branch}",
                {"sha": commit_sha, "force": True},
            )
            return True
        except GitHubError as e:
            logger.debug(
                "Updating refs/heads/%s failed (%s), creating it",
                self.branch,
                e,
            )

        try:
            self._request(
                "POST",
                f"{self.repo_url}/git/refs",
                {"ref": f"refs/heads/{self.branch}", "sha": commit_sha},
            )
            return True
        except GitHubError as e:
            logger.error("Failed to update branch reference: %s", e)
            return False

    def _tree_entry_for(self, file: VaultFile) -> TreeEntry:
        data = file.content.to_bytes()
        match file.content:
            case TextContent(text=text) if len(data) < INLINE_CONTENT_LIMIT:
                return TreeEntry(path=file.path, content=text)
            case TextContent() | BinaryContent():
                return TreeEntry(path=file.path, sha=self.create_blob(data))

    def batch_upload(self, files: list[VaultFile], message: str) -> bool:
        """Commit every file in *files* to the branch as a single commit.

        Steps: resolve head and its tree, build tree entries (inline text
        or blob references), create a tree on top of the old one, create
        the commit, force-update the branch ref. The ref update is the
        only visible step, so a failure before it leaves the branch as it
        was.

        Returns:
            True on success or when *files* is empty, False if any step failed.
        """
        if not files:
            return True

        # Last entry for a duplicated path wins
        unique: dict[str, VaultFile] = {}
        for file in files:
            unique[file.path] = file

        try:
            commit_sha = self.get_latest_commit_sha()
            base_tree_sha = (
                self.get_tree_sha(commit_sha) if commit_sha else None
            )

            entries = [self._tree_entry_for(f) for f in unique.values()]

            tree_sha = self.create_tree(base_tree_sha, entries)
            new_commit_sha = self.create_commit(message, tree_sha, commit_sha)
            if not self.update_branch_ref(new_commit_sha):
                return False
        except (GitHubError, KeyError, ValueError) as e:
            logger.error("Batch upload failed: %s", e)
            return False

        logger.info(
            "Committed %d files to %s as %s",
            len(entries),
            self.branch,
            new_commit_sha[:7],
        )
        return True
