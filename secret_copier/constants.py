"""Label and annotation names shared with replicas already in the cluster.

The annotation key and value are read back from replicas created by earlier
releases, so they must not change.
"""

# Secrets carrying this label (any value) are copied
COPIER_LABEL = "secret-copier"

# Marks an object as a replica; replicas are never copied again
ORIGIN_ANNOTATION = "secret-copier/origin"
ORIGIN_CLONE = "clone"

LAST_APPLIED_ANNOTATION = "kubectl.kubernetes.io/last-applied-configuration"

# Namespaces we usually exclude when --exclude-system is given
SYSTEM_NAMESPACES = {"kube-system", "kube-public", "kube-node-lease"}

DEFAULT_SYNC_TIMEOUT = 60.0
