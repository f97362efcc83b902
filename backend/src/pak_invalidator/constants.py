"""Archive layout constants for RE Engine pak modding."""

import re

GAME_ID = "devilmaycry5"

GAME_PAK_FILE = "re_chunk_000.pak"
DLC_PAK_FILE = "re_dlc_000.pak"

NATIVE_ARCHIVE_KEY = "_native"

# Installed DLCs live in pure-digit folders next to the main pak.
DLC_FOLDER_RGX = re.compile(r"^\d+$")

NATIVES_DIR = "natives"

# QuickBMS scripts shipped alongside the names list.
LIST_SCRIPT = "dmc5_pak_unpack.bms"
INVAL_SCRIPT = "dmc5_pak_invalidate.bms"
REVAL_SCRIPT = "dmc5_pak_revalidate.bms"

REFERENCE_LIST_NAME = "dmc5_pak_names_release.list"
FILTERED_LIST_NAME = "filtered.list"
TEMPORARY_REPORT_NAME = "TEMPORARY_FILE"
REVAL_INPUT_NAME = "invalcache.file"
CACHE_DB_NAME = "invalcache.db"

# Standalone manager files that must never be installed as a mod.
FLUFFY_FILES = ("fmodex64.dll", "Modmanager.exe")
