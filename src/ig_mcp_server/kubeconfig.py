"""Kubernetes access options shared by kubectl and helm invocations."""

from dataclasses import dataclass


@dataclass(frozen=True)
class KubeOptions:
    """Connection flags forwarded to the Kubernetes CLIs.

    Attributes:
        kubeconfig: Path to the kubeconfig file.
        context: kubeconfig context name.
        user: kubeconfig user name.
        token: Bearer token.
    """

    kubeconfig: str | None = None
    context: str | None = None
    user: str | None = None
    token: str | None = None

    def kubectl_args(self) -> list[str]:
        """Flags understood by kubectl and its plugins."""
        args = []
        if self.kubeconfig:
            args.append(f"--kubeconfig={self.kubeconfig}")
        if self.context:
            args.append(f"--context={self.context}")
        if self.user:
            args.append(f"--user={self.user}")
        if self.token:
            args.append(f"--token={self.token}")
        return args

    def helm_args(self) -> list[str]:
        """Flags understood by helm (helm has no user selection flag)."""
        args = []
        if self.kubeconfig:
            args.append(f"--kubeconfig={self.kubeconfig}")
        if self.context:
            args.append(f"--kube-context={self.context}")
        if self.token:
            args.append(f"--kube-token={self.token}")
        return args
