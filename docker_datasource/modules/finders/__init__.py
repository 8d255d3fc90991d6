from .digest import digest_from_manifest_str, extract_digest_from_response
from .labels import LabelFinder
from .manifests import MANIFEST_ACCEPT, MAX_MANIFEST_LIST_DEPTH, ManifestResolver, MediaType
