"""
Policy document loader.

Reads the two policy documents from a policy directory:
- neurorights.json: NeurorightsPolicy
- tsafe.aln: TsafeKernel (JSON-compatible record)

Loading is all-or-nothing. A missing or malformed document raises a
PolicyLoadError subclass; the loader never retries and never substitutes
defaults.
"""

import json
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from infranet.errors import (
    PolicyDocumentMalformedError,
    PolicyDocumentMissingError,
    PolicyLoadError,
)
from infranet.schema import NeurorightsPolicy, TsafeKernel

NEURORIGHTS_DOCUMENT = "neurorights.json"
TSAFE_DOCUMENT = "tsafe.aln"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _load_document(path: Path | str, model: type[ModelT]) -> ModelT:
    path = Path(path)
    document = path.name

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PolicyDocumentMissingError(document=document, path=str(path)) from e
    except UnicodeDecodeError as e:
        raise PolicyDocumentMalformedError(
            document=document,
            path=str(path),
            underlying_error=f"invalid UTF-8: {e}",
        ) from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PolicyDocumentMalformedError(
            document=document,
            path=str(path),
            underlying_error=f"invalid JSON: {e}",
        ) from e

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise PolicyDocumentMalformedError(
            document=document,
            path=str(path),
            underlying_error=f"{e.error_count()} validation error(s): {e.errors()[0]['msg']}",
        ) from e


def load_neurorights_policy(path: Path | str) -> NeurorightsPolicy:
    """
    Load a neurorights policy document.

    Raises:
        PolicyDocumentMissingError: If the file cannot be read
        PolicyDocumentMalformedError: If it is not valid JSON or fails validation
    """
    return _load_document(path, NeurorightsPolicy)


def load_tsafe_kernel(path: Path | str) -> TsafeKernel:
    """
    Load a Tsafe kernel document.

    Raises:
        PolicyDocumentMissingError: If the file cannot be read
        PolicyDocumentMalformedError: If it is not valid JSON or fails validation
    """
    return _load_document(path, TsafeKernel)


def load_policy_documents(policy_dir: Path | str) -> tuple[NeurorightsPolicy, TsafeKernel]:
    """
    Load both policy documents from a directory.

    Args:
        policy_dir: Directory holding neurorights.json and tsafe.aln

    Returns:
        (NeurorightsPolicy, TsafeKernel)

    Raises:
        PolicyLoadError: If the directory or either document is unusable
    """
    policy_dir = Path(policy_dir)
    if not policy_dir.is_dir():
        raise PolicyLoadError(
            document=policy_dir.name,
            path=str(policy_dir),
            message=f"Policy directory not found: {policy_dir}",
            suggestion="Pass --policies or set INFRANET_POLICY_DIR",
        )

    neurorights = load_neurorights_policy(policy_dir / NEURORIGHTS_DOCUMENT)
    tsafe = load_tsafe_kernel(policy_dir / TSAFE_DOCUMENT)
    return neurorights, tsafe
