"""Resolves the cluster resources teardown should delete."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from rosadr.errors import DRError, EmptyResultError, ExecutionError
from rosadr.models import ResourceKind
from rosadr.services.naming import matches_cluster, schedule_resource_name


class NameResolver(ABC):
    """Maps a resource kind to the names of live resources to delete."""

    def __init__(self, reader, logger, namespace: Optional[str] = None):
        self.reader = reader
        self.logger = logger
        self.namespace = namespace

    @abstractmethod
    def resolve(self, kind: ResourceKind) -> List[str]:
        raise NotImplementedError

    def _request(self, kind: ResourceKind, name: str) -> Optional[str]:
        """Confirms a single named resource exists, returning its live name."""
        try:
            return self.reader.get_resource_name(kind, name, self.namespace)
        except (ExecutionError, EmptyResultError) as exc:
            self.logger.info("%s '%s' not found: %s", kind.manifest_kind, name, exc)
            return None

    def _request_all(self, kind: ResourceKind, names: Iterable[str]) -> List[str]:
        resolved = []
        for name in names:
            live_name = self._request(kind, name)
            if live_name and live_name not in resolved:
                resolved.append(live_name)
        return resolved


class LiveNameResolver(NameResolver):
    """Enumerates the live cluster, keyed on the cluster id."""

    def __init__(self, reader, logger, cluster_id: str, namespace: Optional[str] = None):
        super().__init__(reader, logger, namespace)
        if not cluster_id:
            raise DRError("Live resource discovery requires a cluster id.")
        self.cluster_id = cluster_id

    def resolve(self, kind: ResourceKind) -> List[str]:
        if kind.deterministic_name:
            return self._request_all(kind, [schedule_resource_name(self.cluster_id)])

        names = self.reader.list_resource_names(kind, self.namespace)
        return [name for name in names if matches_cluster(name, self.cluster_id)]


class ManifestNameResolver(NameResolver):
    """Takes the declared names from a deployment manifest."""

    def __init__(self, reader, logger, manifest_path: str, namespace: Optional[str] = None):
        super().__init__(reader, logger, namespace)
        self.manifest_path = manifest_path
        self.documents = self._load(manifest_path)

    @staticmethod
    def _load(manifest_path: str) -> List[Dict[str, Any]]:
        path = Path(manifest_path)
        if not path.exists():
            raise DRError(f"Manifest file not found: {manifest_path}")

        try:
            loaded = list(yaml.safe_load_all(path.read_text(encoding="utf-8")))
        except (yaml.YAMLError, OSError) as exc:
            raise DRError(f"Invalid manifest file '{manifest_path}': {exc}") from exc

        documents: List[Dict[str, Any]] = []
        for document in loaded:
            if not isinstance(document, dict):
                continue
            if document.get("kind") == "List" and isinstance(document.get("items"), list):
                documents.extend(item for item in document["items"] if isinstance(item, dict))
            else:
                documents.append(document)
        return documents

    def declared_names(self, kind: ResourceKind) -> List[str]:
        names = []
        for document in self.documents:
            declared_kind = str(document.get("kind") or "")
            if declared_kind.lower() != kind.manifest_kind.lower():
                continue
            metadata = document.get("metadata")
            name = metadata.get("name") if isinstance(metadata, dict) else None
            if isinstance(name, str) and name.strip() and name.strip() not in names:
                names.append(name.strip())
        return names

    def resolve(self, kind: ResourceKind) -> List[str]:
        return self._request_all(kind, self.declared_names(kind))
