"""Well-known names shared with the node agent and the cluster API."""

# Node annotations. Values are opaque configuration names or update states.
CURRENT_CONFIG_ANNOTATION = "machineconfiguration.openshift.io/currentConfig"
DESIRED_CONFIG_ANNOTATION = "machineconfiguration.openshift.io/desiredConfig"
UPDATE_STATE_ANNOTATION = "machineconfiguration.openshift.io/state"

TRACKED_ANNOTATIONS = (
    CURRENT_CONFIG_ANNOTATION,
    DESIRED_CONFIG_ANNOTATION,
    UPDATE_STATE_ANNOTATION,
)

# Update states written by the node agent
STATE_DONE = "Done"
STATE_WORKING = "Working"
STATE_DEGRADED = "Degraded"
STATE_UNRECONCILABLE = "Unreconcilable"

FAILING_STATES = (STATE_DEGRADED, STATE_UNRECONCILABLE)

# Built-in pools
MASTER_POOL = "master"
WORKER_POOL = "worker"

# Custom resource coordinates
CRD_GROUP = "machineconfiguration.openshift.io"
CRD_VERSION = "v1"
CRD_API_VERSION = f"{CRD_GROUP}/{CRD_VERSION}"
POOL_PLURAL = "machineconfigpools"
POOL_KIND = "MachineConfigPool"
CONFIGURATION_PLURAL = "machineconfigs"

EVENT_SOURCE_COMPONENT = "machineconfigcontroller-nodecontroller"

# Warning event reasons
REASON_SELECTING_ALL = "SelectingAll"
REASON_MISSING_SELECTOR = "MissingSelector"
