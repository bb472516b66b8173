"""Constants for the CertificateSet Operator."""

# API Group
API_GROUP = "in-cloud.io"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"
PLURAL_CERTIFICATE_SET = "certificatesets"

# cert-manager
CERT_MANAGER_GROUP = "cert-manager.io"
CERT_MANAGER_VERSION = "v1"
CERT_MANAGER_GROUP_VERSION = f"{CERT_MANAGER_GROUP}/{CERT_MANAGER_VERSION}"

# Resource Kinds
KIND_CERTIFICATE_SET = "CertificateSet"
KIND_CERTIFICATE = "Certificate"
KIND_ISSUER = "Issuer"
KIND_CLUSTER_ISSUER = "ClusterIssuer"
KIND_SECRET = "Secret"

# Kinds whose changes re-trigger reconciliation of the owning CertificateSet
OWNED_RESOURCES = (
    (CERT_MANAGER_GROUP, CERT_MANAGER_VERSION, "certificates"),
    (CERT_MANAGER_GROUP, CERT_MANAGER_VERSION, "issuers"),
    ("", "v1", "secrets"),
)

# Environments
ENV_CLIENT = "client"
ENV_SYSTEM = "system"
ENV_INFRA = "infra"

# Child name suffixes
SUFFIX_CA = "-ca"
SUFFIX_SUPER_ADMIN = "-super-admin"
SUFFIX_ETCD = "-etcd"
SUFFIX_PROXY = "-proxy"
SUFFIX_CA_OIDC = "-ca-oidc"
SUFFIX_KUBECONFIG = "-kubeconfig"
SUFFIX_ARGOCD_CLUSTER = "-argocd-cluster"

# Credential bundle keys written by cert-manager
SECRET_KEY_CA_CRT = "ca.crt"
SECRET_KEY_TLS_CRT = "tls.crt"
SECRET_KEY_TLS_KEY = "tls.key"
BUNDLE_KEYS = (SECRET_KEY_CA_CRT, SECRET_KEY_TLS_CRT, SECRET_KEY_TLS_KEY)

# Managed secret keys
KUBECONFIG_MANAGED_KEYS = ("value",)
ARGOCD_MANAGED_KEYS = ("config", "name", "server")

# Certificate lifetimes
CA_DURATION = "175200h"
CLIENT_DURATION = "8760h"
RENEW_BEFORE = "720h"

# Labels
LABEL_ARGOCD_SECRET_TYPE = "argocd.argoproj.io/secret-type"

# Annotations
ANNOTATION_OWNER = f"certificateset.{API_GROUP}/owner"
ANNOTATION_OWNER_UID = f"certificateset.{API_GROUP}/owner-uid"
ANNOTATION_CHILD_EVENT = f"certificateset.{API_GROUP}/child-event"
ANNOTATION_LAST_APPLIED = "kubectl.kubernetes.io/last-applied-configuration"
KOPF_ANNOTATION_PREFIX = "kopf.zalando.org/"
OPERATOR_ANNOTATION_PREFIX = f"certificateset.{API_GROUP}/"

# Finalizers
FINALIZER = f"certificateset.{API_GROUP}/cleanup"

# Field Manager
FIELD_MANAGER = "certificate-set-operator"

# Defaults
DEFAULT_ARGOCD_NAMESPACE = "beget-argocd"
DEFAULT_REQUEUE_AFTER_SECONDS = 5.0

# Condition Types
COND_READY = "Ready"
COND_PROGRESSING = "Progressing"
COND_DEGRADED = "Degraded"

# Condition Reasons
REASON_ALL_RESOURCES_READY = "AllResourcesReady"
REASON_COMPLETE = "Complete"
REASON_HEALTHY = "Healthy"
REASON_WAITING_FOR_RESOURCES = "WaitingForResources"
REASON_RESOURCES_PENDING = "ResourcesPending"
REASON_CA_CERTIFICATES_FAILED = "CACertificatesFailed"
REASON_CLIENT_CERTIFICATES_FAILED = "ClientCertificatesFailed"
REASON_DERIVED_SECRETS_FAILED = "DerivedSecretsFailed"
REASON_ARGOCD_NAMESPACE_NOT_FOUND = "ArgoCDNamespaceNotFound"
REASON_ARGOCD_CLEANUP_FAILED = "ArgoCDCleanupFailed"
REASON_CHECK_FAILED = "CheckFailed"
REASON_RECONCILE_FAILED = "ReconcileFailed"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_RESOURCE_CREATED = "ResourceCreated"
EVENT_REASON_RESOURCE_UPDATED = "ResourceUpdated"
EVENT_REASON_SECRET_DELETED = "SecretDeleted"
EVENT_REASON_CONVERGED = "Converged"
EVENT_REASON_CLEANUP_COMPLETED = "CleanupCompleted"
