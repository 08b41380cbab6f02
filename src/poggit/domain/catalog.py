from __future__ import annotations

from enum import IntEnum


class ReleaseStage(IntEnum):
    DRAFT = 0
    UNCHECKED = 1
    RESTRICTED = 2
    TRUSTED = 3
    APPROVED = 4
    FEATURED = 5

    @property
    def human_name(self) -> str:
        return STAGE_HUMAN[self]


STAGE_HUMAN = {
    ReleaseStage.DRAFT: "Draft",
    ReleaseStage.UNCHECKED: "Submitted",
    ReleaseStage.RESTRICTED: "Checked",
    ReleaseStage.TRUSTED: "Voted",
    ReleaseStage.APPROVED: "Approved",
    ReleaseStage.FEATURED: "Featured",
}

# Bit values as stored in releases.flags.
FLAG_PRE_RELEASE = 0x02
FLAG_OUTDATED = 0x04
FLAG_OFFICIAL = 0x08

# release_meta.type
META_PERMISSION = 1

CATEGORIES: dict[int, str] = {
    1: "General",
    2: "Admin Tools",
    3: "Informational",
    4: "Anti-Griefing Tools",
    5: "Chat-Related",
    6: "Teleportation",
    7: "Mechanics",
    8: "Economy",
    9: "Minigame",
    10: "Fun",
    11: "World Editing and Management",
    12: "World Generators",
    13: "Developer Tools",
    14: "Educational",
    15: "Miscellaneous",
}

PERMISSIONS: dict[int, tuple[str, str]] = {
    1: ("Manage plugins", "installs/uninstalls/enables/disables plugins"),
    2: ("Manage worlds", "registers worlds"),
    3: ("Manage permissions", "only includes managing user permissions for other plugins"),
    4: ("Manage entities", "registers new types of entities"),
    5: ("Manage blocks/items", "registers new blocks/items"),
    6: ("Manage tiles", "registers new tiles"),
    7: ("Manage world generators", "registers new world generators"),
    8: ("Database", "uses databases not local to this server instance, e.g. a MySQL database"),
    9: (
        "Other files",
        "uses SQLite databases and YAML data folders. Do not include non-data-saving "
        "fixed-number files (i.e. config & lang files)",
    ),
    10: ("Permissions", "registers permissions"),
    11: ("Commands", "registers commands"),
    12: (
        "Edit world",
        "changes blocks in a world; do not check this if your plugin only edits worlds using world generators",
    ),
    13: ("External Internet clients", "starts client sockets to the external Internet, including MySQL and cURL calls"),
    14: ("External Internet sockets", "listens on a server socket not started by PocketMine"),
    15: ("Asynchronous tasks", "uses AsyncTask"),
    16: ("Custom threading", "starts threads; do not include AsyncTask (because they aren't threads)"),
}

REQUIREMENT_TYPES: dict[str, int] = {
    "mail": 1,
    "mysql": 2,
    "apiToken": 3,
    "password": 4,
    "other": 5,
}

# Ordered oldest first; a spoon stores indices into this sequence.
POCKETMINE_API_VERSIONS: tuple[str, ...] = (
    "1.0.0",
    "1.1.0",
    "1.2.1",
    "1.3.0",
    "1.4.0",
    "1.5.0",
    "1.6.0",
    "1.7.0",
    "1.8.0",
    "1.9.0",
    "1.10.0",
    "1.11.0",
    "1.12.0",
    "1.13.0",
    "2.0.0",
    "2.1.0",
    "3.0.0-ALPHA1",
    "3.0.0-ALPHA2",
    "3.0.0-ALPHA3",
    "3.0.0-ALPHA4",
    "3.0.0-ALPHA5",
    "3.0.0-ALPHA6",
)

SELF_RELEASE_DEPENDENCY = "poggit-release"
