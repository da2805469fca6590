NIL_UUID = "00000000-0000-0000-0000-000000000000"

STATUS_OUTPUT_ENV_VAR = "AZ_SCRIPTS_OUTPUT_PATH"
VALIDATION_STATUS_MARKER = "VALIDATION_STATUS=SUCCESS"
DEPLOYMENT_STATUS_MARKER = "DEPLOYMENT_STATUS=SUCCESS"

FUNCTION_RUNTIME = "python"
FUNCTION_RUNTIME_VERSION = "3.11"
FUNCTIONS_VERSION = "4"
APP_SERVICE_PLAN_SKU = "S1"
STORAGE_ACCOUNT_SKU = "Standard_LRS"

VNET_ADDRESS_PREFIX = "172.16.0.0/16"
FUNCTIONS_SUBNET_PREFIX = "172.16.0.0/24"
FUNCTIONS_SUBNET_DELEGATION = "Microsoft.Web/serverFarms"

ACTIVE_GATE_PORT = 9999
ACTIVE_GATE_CPU = 1
ACTIVE_GATE_MEMORY_GB = 2
ACTIVE_GATE_IMAGE_PATH = "linux/activegate:latest"

EVENT_HUBS_DATA_RECEIVER_ID = "a638d3c7-ab3a-418d-83e6-5f17a39d4fde"
MONITORING_METRICS_PUBLISHER_ID = "3913510d-42f4-4e42-8a64-420c390055eb"
