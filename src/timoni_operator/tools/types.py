from typing import Any, NewType


Manifest = NewType("Manifest", dict[str, Any])
""" Represents a Kubernetes manifest as loaded from YAML. """

SecretData = NewType("SecretData", dict[str, bytes])
""" The decoded `data` payload of a Kubernetes Secret, mapping keys to raw bytes. """
