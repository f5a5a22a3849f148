"""Entitlement and access control.

One evaluator decides access for every kind of course content; the
service loads descriptors and issues stream tokens on top of it.
"""

from .evaluator import evaluate
from .models import AccessReason, ResourceDescriptor, ResourceKind, Verdict


__all__ = ["AccessReason", "ResourceDescriptor", "ResourceKind", "Verdict", "evaluate"]
