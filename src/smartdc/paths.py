"""CloudAPI resource path templates.

Each ``{}`` is filled with an escaped identifier before encoding.
"""

ROOT = "/{}"
KEYS = ROOT + "/keys"
KEY = KEYS + "/{}"
PACKAGES = ROOT + "/packages"
PACKAGE = PACKAGES + "/{}"
DATASETS = ROOT + "/datasets"
DATASET = DATASETS + "/{}"
IMAGES = ROOT + "/images"
IMAGE = IMAGES + "/{}"
DATACENTERS = ROOT + "/datacenters"
MACHINES = ROOT + "/machines"
MACHINE = MACHINES + "/{}"
METADATA = MACHINE + "/metadata"
METADATA_KEY = METADATA + "/{}"
SNAPSHOTS = MACHINE + "/snapshots"
SNAPSHOT = SNAPSHOTS + "/{}"
TAGS = MACHINE + "/tags"
TAG = TAGS + "/{}"
AUDIT = MACHINE + "/audit"
MACHINE_USAGE = MACHINE + "/usage/{}"
USAGE = ROOT + "/usage/{}"
ANALYTICS = ROOT + "/analytics"
INSTS = ANALYTICS + "/instrumentations"
INST = INSTS + "/{}"
INST_RAW = INST + "/value/raw"
INST_HMAP = INST + "/value/heatmap/image"
INST_HMAP_DETAILS = INST + "/value/heatmap/details"
NETWORKS = ROOT + "/networks"
NETWORK = NETWORKS + "/{}"
CONFIG = ROOT + "/config"
VLANS = ROOT + "/fabrics/default/vlans"
VLAN = VLANS + "/{}"
FABRIC_NETWORKS = VLAN + "/networks"
FABRIC_NETWORK = FABRIC_NETWORKS + "/{}"
