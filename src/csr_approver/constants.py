"""
Constants used throughout the CSR approver.

This module defines all constant values used by the operator including:
- The cluster-name label and the expected bootstrap identity
- Approval condition reason and message
- Kubernetes resource coordinates
- Retry delays for kopf
"""

import logging
import os

# Label whose value names the cluster requesting the certificate
CLUSTER_NAME_LABEL = "open-cluster-management.io/cluster-name"

# Expected requester identity, formatted with (cluster_name, cluster_name)
BOOTSTRAP_USERNAME_TEMPLATE = "system:serviceaccount:{0}:{0}-bootstrap-sa"

# CSR condition types (certificates.k8s.io)
CONDITION_APPROVED = "Approved"
CONDITION_DENIED = "Denied"
TERMINAL_CONDITION_TYPES = (CONDITION_APPROVED, CONDITION_DENIED)

# Condition status constants
CONDITION_TRUE = "True"

# Approval condition content
APPROVAL_REASON = "AutoApprovedByCSRController"
APPROVAL_MESSAGE = (
    "The managedcluster-import-controller auto approval "
    "automatically approved this CSR"
)

# CertificateSigningRequest coordinates (cluster-scoped)
CSR_GROUP = "certificates.k8s.io"
CSR_VERSION = "v1"
CSR_PLURAL = "certificatesigningrequests"

# ManagedCluster coordinates (cluster-scoped registry entries)
MANAGED_CLUSTER_GROUP = "cluster.open-cluster-management.io"
MANAGED_CLUSTER_VERSION = "v1"
MANAGED_CLUSTER_PLURAL = "managedclusters"
MANAGED_CLUSTER_CRD_NAME = f"{MANAGED_CLUSTER_PLURAL}.{MANAGED_CLUSTER_GROUP}"

# Prefix for kopf bookkeeping annotations on CSRs
KOPF_ANNOTATION_PREFIX = "csr-approver.open-cluster-management.io"

# Retry delays (in seconds) suggested to kopf
DEFAULT_RETRY_DELAY = 10
CONFLICT_RETRY_DELAY = 1

# Reconcile outcomes
OUTCOME_APPROVED = "approved"
OUTCOME_DRY_RUN = "dry_run"
OUTCOME_CSR_NOT_FOUND = "csr_not_found"
OUTCOME_DELETING = "deleting"
OUTCOME_MISSING_CLUSTER_LABEL = "missing_cluster_label"
OUTCOME_CLUSTER_NOT_REGISTERED = "cluster_not_registered"
OUTCOME_ALREADY_RESOLVED = "already_resolved"
OUTCOME_USERNAME_MISMATCH = "username_mismatch"

# Handler entry log level (DEBUG keeps production logs quiet)
HANDLER_ENTRY_LOG_LEVEL = getattr(
    logging, os.getenv("HANDLER_ENTRY_LOG_LEVEL", "INFO").upper(), logging.INFO
)
