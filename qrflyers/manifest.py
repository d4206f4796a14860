import json
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import ManifestError

MIN_BASE_URL_LENGTH = 10


@dataclass(frozen=True)
class Manifest:
    """The base URL, URL parameters and identifiers of one generation run."""
    base_url: str = ""
    url_params: str = ""
    hash: Tuple[str, ...] = field(default_factory=tuple)

    def target_url(self, identifier: str) -> str:
        """Builds the URL encoded in the QR code for `identifier`."""
        base = self.base_url.rstrip('/') + '/'
        return f"{base}{identifier}{self.url_params or ''}"

    def target_urls(self) -> List[str]:
        return [self.target_url(identifier) for identifier in self.hash]

    def rendering_problems(self) -> List[str]:
        """Returns the reasons QR codes cannot be rendered from this manifest."""
        problems = []
        if not isinstance(self.base_url, str) or len(self.base_url) < MIN_BASE_URL_LENGTH:
            problems.append(
                "The manifest must contain a property named 'baseUrl' with the url as a string "
                f"of at least {MIN_BASE_URL_LENGTH} characters")
        if not self.hash:
            problems.append(
                "The manifest must contain a property named 'hash' which is an array "
                "containing strings with at least 1 element")
        return problems

    def to_dict(self) -> Dict:
        return {
            'baseUrl': self.base_url,
            'urlParams': self.url_params,
            'hash': list(self.hash),
        }

    @classmethod
    def from_dict(cls, data) -> "Manifest":
        if not isinstance(data, dict):
            raise ManifestError("Invalid manifest format: expected a JSON object")

        hashes = data.get('hash')
        if not isinstance(hashes, list):
            raise ManifestError("Invalid manifest format: missing or invalid 'hash' array")

        for key in ('baseUrl', 'urlParams'):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise ManifestError(f"Invalid manifest format: '{key}' must be a string")

        return cls(
            base_url=data.get('baseUrl') or "",
            url_params=data.get('urlParams') or "",
            hash=tuple(str(h) for h in hashes),
        )


def build_manifest(identifiers: Optional[Sequence[str]], base_url: Optional[str],
                   url_params: Optional[str]) -> Manifest:
    return Manifest(
        base_url=base_url if base_url else "",
        url_params=url_params if url_params else "",
        hash=tuple(identifiers) if identifiers else (),
    )


def write_manifest(output_path: str, identifiers: Optional[Sequence[str]],
                   base_url: Optional[str], url_params: Optional[str]) -> Manifest:
    """
    Writes the run manifest as pretty-printed JSON.

    Args:
        output_path (str): Destination file. Parent folders are created.
        identifiers: Identifier sequence, in QR position order.
        base_url (str): URL every identifier is appended to.
        url_params (str): Suffix appended after the identifier.

    Returns:
        Manifest: The record that was written.

    Raises:
        OSError: If the file cannot be written. The error is printed first.
    """
    manifest = build_manifest(identifiers, base_url, url_params)
    try:
        parent = os.path.dirname(output_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(output_path, mode='w', encoding='utf-8') as f:
            json.dump(manifest.to_dict(), f, indent=2)
    except OSError as e:
        print(f"❌ Error creating manifest file {output_path}: {e}")
        raise

    print(f"✅ File {output_path} created successfully")
    return manifest


def read_manifest(manifest_path: str) -> Manifest:
    """Loads a manifest file, raising ManifestError if it cannot be used."""
    try:
        with open(manifest_path, mode='r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ManifestError(f"The manifest file '{manifest_path}' was not found.") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"The manifest file '{manifest_path}' is not valid JSON: {e}") from e

    return Manifest.from_dict(data)
