"""kubegate.

Compile Kubernetes gateway resources into proxy data-plane configuration and
validate them for cross-resource correctness before admission.
"""

__version__ = "0.1.0"
__author__ = "Platform Engineering Team"
__license__ = "Apache-2.0"
