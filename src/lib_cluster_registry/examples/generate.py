"""Example user override document.

Purpose
-------
Show operators what a ``clusters.yaml`` override looks like. The text is
printed by ``bootstrap`` when no cluster could be configured and written to
disk by ``init``. This module has no runtime coupling to the composition root.

Contents
    - ``EXAMPLE_OVERRIDES``: the example document.
    - ``ExampleSpec``: dataclass capturing a relative path and text content.
    - ``generate_overrides_example``: write the example without clobbering.
    - ``_should_write`` / ``_ensure_parent``: tiny filesystem helpers.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..adapters.path_resolvers.default import OVERRIDES_FILENAME

EXAMPLE_OVERRIDES = """\
# User overrides for the cluster registry.
#
# Only the anchors listed here are configured; everything else in the shipped
# registry is left alone. Values deep-merge into the shipped entry: mappings
# merge, lists and scalars replace.
clusters:
  - anchor: dev-usw2
    override:
      identities:
        # Must match the user name in the kubeconfig the obtain command prints.
        - name: arn:aws:eks:us-west-2:123456789012:cluster/dev
          credentialFetch:
            exec:
              apiVersion: client.authentication.k8s.io/v1beta1
              command: aws
              args: [eks, get-token, --cluster-name, dev, --region, us-west-2]
              env:
                - name: AWS_PROFILE
                  value: dev-readonly

  # Replace the obtain command too when your account differs from the default.
  - anchor: analytics-weu
    obtain: [az, aks, get-credentials, --resource-group, my-rg, --name, analytics-weu, --file, "-"]
    override:
      identities:
        - name: clusterUser_my-rg_analytics-weu
          credentialFetch:
            exec:
              apiVersion: client.authentication.k8s.io/v1beta1
              command: kubelogin
              args: [get-token, --login, azurecli, --server-id, 6dae42f8-4368-4678-94ff-3960e28e3630]
"""


@dataclass(slots=True)
class ExampleSpec:
    """A single example file: path relative to the destination and its text."""

    relative_path: Path
    content: str


def generate_overrides_example(destination: str | Path, *, force: bool = False) -> list[Path]:
    """Write the example override document into *destination*.

    Why
    ----
    New users need a starting point that already matches the shipped anchors.

    Parameters
    ----------
    destination:
        Directory that receives ``clusters.yaml`` (usually the state directory).
    force:
        When ``True`` an existing file is overwritten; otherwise it is left
        untouched and nothing is returned for it.

    Returns
    -------
    list[Path]
        Files written during this invocation.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> [path.name for path in generate_overrides_example(tmp.name)]
    ['clusters.yaml']
    >>> generate_overrides_example(tmp.name)
    []
    >>> tmp.cleanup()
    """

    dest = Path(destination)
    written: list[Path] = []
    for spec in (ExampleSpec(Path(OVERRIDES_FILENAME), EXAMPLE_OVERRIDES),):
        path = dest / spec.relative_path
        if not _should_write(path, force):
            continue
        _ensure_parent(path)
        path.write_text(spec.content, encoding="utf-8")
        written.append(path)
    return written


def _should_write(path: Path, force: bool) -> bool:
    """Return ``True`` when *path* should be written respecting *force*."""

    return force or not path.exists()


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
