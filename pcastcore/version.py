"""Protocol and agent version constants."""

PCP_BROADCAST_FLAGS = 0x00
PCP_FORCE_YP = False

PCP_CLIENT_VERSION = 1218
PCP_ROOT_VERSION = 1218
PCP_CLIENT_MINVERSION = 1200

PCX_AGENT = "PeerCast/0.1218"
PCX_VERSTRING = "v0.1218"