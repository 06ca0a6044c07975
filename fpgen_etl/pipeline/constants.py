"""
Node names and reserved tokens shared by the dataset builders.

These strings are part of the contract with the network structure files, so
they must not change.
"""

BROWSER_HTTP_NODE_NAME = "*BROWSER_HTTP"
HTTP_VERSION_NODE_NAME = "*HTTP_VERSION"
BROWSER_NODE_NAME = "*BROWSER"
OPERATING_SYSTEM_NODE_NAME = "*OPERATING_SYSTEM"
DEVICE_NODE_NAME = "*DEVICE"

# Columns computed from the user-agent rather than taken from the capture
NON_GENERATED_NODES = (
    BROWSER_HTTP_NODE_NAME,
    BROWSER_NODE_NAME,
    OPERATING_SYSTEM_NODE_NAME,
    DEVICE_NODE_NAME,
)

MISSING_VALUE_DATASET_TOKEN = "*MISSING_VALUE*"
STRINGIFIED_PREFIX = "*STRINGIFIED*"

PLUGIN_CHARACTERISTICS_ATTRIBUTES = ("plugins", "mimeTypes")
PLUGINS_DATA_ATTRIBUTE = "pluginsData"

# Build paths
HEADERS_PATH = "headers"
FINGERPRINTS_PATH = "fingerprints"
