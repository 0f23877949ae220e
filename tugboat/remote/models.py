"""Provider-agnostic repository records."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RemoteRepository:
    """Normalized snapshot of a repository on a hosting service (Gitea, GitHub)."""
    id: int
    name: str
    full_name: str = ""
    description: str = ""
    clone_url: str = ""
    ssh_url: str = ""
    html_url: str = ""
    default_branch: str = ""
    archived: bool = False
    private: bool = False
    fork: bool = False
    empty: bool = False

    def get_clone_url(self, prefer_ssh: bool) -> str:
        """Return the SSH URL when requested and available, otherwise HTTPS."""
        if prefer_ssh and self.ssh_url:
            return self.ssh_url
        return self.clone_url

    def clone_url_for(self, protocol: str) -> str:
        """Pick a clone URL for a configured protocol: ssh, https or auto."""
        if protocol == "ssh":
            return self.get_clone_url(True)
        if protocol == "auto":
            return self.get_clone_url(bool(self.ssh_url))
        return self.get_clone_url(False)
