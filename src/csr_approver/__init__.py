"""
CSR Approver - A Kopf-based controller that auto-approves cluster bootstrap CSRs.

A managed cluster's agent joins with a bootstrap service account and requests
a client certificate. This operator approves that request when:
- The CSR carries the cluster-name label
- The requester is the cluster's bootstrap service account
- The cluster is registered as a ManagedCluster
- The CSR has not already been approved or denied
"""

__version__ = "0.1.0"
