"""
Listing format constants and remote store limits.
"""
import struct

# Listing blob: each name is a big-endian uint32 length followed by UTF-8 bytes.
RECORD_LENGTH_STRUCT = struct.Struct(">I")
RECORD_LENGTH_SIZE = RECORD_LENGTH_STRUCT.size  # 4 bytes

# zlib window bits selecting the gzip container (header + CRC trailer)
GZIP_WBITS = 16 + 15
COMPRESSION_LEVEL = 6

# Listing defaults
DEFAULT_PATH_MATCH_PATTERN = ".*"
DEFAULT_TOTAL_FILE_COUNT_LIMIT = 2_147_483_647
DEFAULT_MIN_TASK_SIZE = 0

# Size recorded for objects named explicitly instead of listed
EXPLICIT_PATH_SIZE = 1

# Page token: field tag 1, wire type 2 (length-delimited)
PAGE_TOKEN_TAG = 0x0A
MAX_OBJECT_NAME_BYTES = 1024

# Hint prefix for opened objects
URI_SCHEME = "s3"
