# The MIT License (MIT)
# Copyright © 2025 Entrius
# =============================================================================
# Plugin registry
# =============================================================================
REGISTRY_REPO = "obsidianmd/obsidian-releases"
REGISTRY_REPO_URL = "https://github.com/obsidianmd/obsidian-releases.git"
REGISTRY_BRANCH = "master"
TRACKED_FILE = "community-plugins.json"
DEFAULT_PR_SEARCH_QUERY = "community-plugins in:path"
DEFAULT_PR_LIST_LIMIT = 5000

# =============================================================================
# GitHub API
# =============================================================================
BASE_GITHUB_API_URL = "https://api.github.com"
GRAPHQL_PAGE_SIZE = 100

# =============================================================================
# Output
# =============================================================================
DEFAULT_OUTPUT_DIR = "_data"
PENDING_PLUGINS_FILE = "pending-plugins.json"
UNMATCHED_PLUGINS_FILE = "unmatched-plugins.json"
CURRENT_PLUGINS_FILE = "current-plugins.json"
PROGRESS_LOG_INTERVAL = 100  # PRs between progress log lines

# =============================================================================
# Attribution
# =============================================================================
ADD_PLUGIN_TITLE_MARKER = "add plugin:"

UNMATCHED_OWNER_MULTIPLE = "owner_multiple_no_title_match"
UNMATCHED_NO_MATCH = "no_match"

# Extraction skip reasons
SKIP_UNAVAILABLE = "unavailable"
SKIP_INVALID_JSON = "invalid_json"
SKIP_NOT_A_LIST = "not_a_list"

# Fields every plugin record carries, in emission order
ENTRY_FIELDS = ("id", "name", "author", "description", "repo")
