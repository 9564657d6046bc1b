"""Constants for directory_auth."""

DOMAIN = "ldap_auth"

# Config keys
CONF_URI = "uri"
CONF_BASE_DN = "base_dn"
CONF_FOLLOW_REFERRALS = "follow_referrals"
CONF_SEARCH_USER_NAME = "search_user_name"
CONF_SEARCH_USER_PASSWORD = "search_user_password"
CONF_OBJECT_CLASS = "object_class"
CONF_LOGIN_ATTRIBUTE = "login_attribute"
CONF_PROTOCOL_VERSION = "protocol_version"
CONF_OPERATION_TIMEOUT = "operation_timeout"
CONF_CONNECT_TIMEOUT = "connect_timeout"
CONF_VERIFY_SSL = "verify_ssl"
CONF_USE_STARTTLS = "use_starttls"
CONF_GROUP = "group"
CONF_DISPLAY_ATTRIBUTE = "display_attribute"

DEFAULT_FOLLOW_REFERRALS = False
DEFAULT_OBJECT_CLASS = "person"
DEFAULT_LOGIN_ATTRIBUTE = "uid"
DEFAULT_PROTOCOL_VERSION = 3
DEFAULT_OPERATION_TIMEOUT = 10
DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_VERIFY_SSL = True
DEFAULT_USE_STARTTLS = False
DEFAULT_DISPLAY_ATTRIBUTE = "displayName"

GROUP_OBJECT_CLASS = "groupOfUniqueNames"
GROUP_MEMBER_ATTRIBUTE = "uniqueMember"

# Connection options understood by DirectoryClient.configure()
OPT_PROTOCOL_VERSION = "protocol_version"
OPT_REFERRALS = "referrals"
OPT_NETWORK_TIMEOUT = "network_timeout"
OPT_TIMELIMIT = "timelimit"
OPT_VERIFY_SSL = "verify_ssl"
OPT_STARTTLS = "starttls"

# Exit codes of the command line helper
EXIT_OK = 0
EXIT_INVALID_CREDENTIALS = 1
EXIT_CONFIG_ERROR = 2
EXIT_LDAP_ERROR = 5
