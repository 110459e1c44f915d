import struct


# Wire layout (all integers little endian):
#   u32 header_len | header | data
# Header entry:
#   u16 id_len | id[id_len] | u64 data_len
HEADER_LEN_STRUCT = struct.Struct("<I")
ID_LEN_STRUCT = struct.Struct("<H")
DATA_LEN_STRUCT = struct.Struct("<Q")

MAX_ID_LENGTH = 0xFFFF
MAX_HEADER_LENGTH = 0xFFFFFFFF

# Fixed bytes per header entry, excluding the id itself
ENTRY_OVERHEAD = ID_LEN_STRUCT.size + DATA_LEN_STRUCT.size


# Phase names carried by Truncated / BlobIOError
PHASE_HEADER_LENGTH = "header-length"
PHASE_HEADER = "header"
PHASE_ID_LENGTH = "id-length"
PHASE_ID = "id"
PHASE_DATA_LENGTH = "data-length"
PHASE_DATA = "data"


COPY_CHUNK_SIZE = 1_048_576  # 1 MiB
