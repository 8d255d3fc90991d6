# CLI argument parsing for docker-datasource

import argparse
import sys

from docker_datasource.config import DEFAULT_REGISTRY_URL


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Look up digests and labels of container images in Docker V2 registries."
    )
    p.add_argument(
        "--target-image", "-t",
        dest="image_ref",
        help="Image (name[:tag] or name@digest) to inspect",
    )
    p.add_argument(
        "--registry-url", "-r",
        dest="registry_url",
        default=DEFAULT_REGISTRY_URL,
        help=f"Default registry for names without a host (default: {DEFAULT_REGISTRY_URL})",
    )
    p.add_argument(
        "--digest",
        action="store_true",
        help="Print the manifest digest the tag points at",
    )
    p.add_argument(
        "--config-digest",
        action="store_true",
        help="Print the digest of the image config blob",
    )
    p.add_argument(
        "--labels",
        action="store_true",
        help="Print the image labels",
    )
    p.add_argument(
        "--json",
        action="store_true",
        help="Emit results as a JSON object",
    )
    p.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    p.add_argument(
        "--api", "-A",
        action="store_true",
        help="Start the API server (uvicorn on 127.0.0.1:8000)",
    )

    args = p.parse_args(argv)
    if not args.api and not args.image_ref:
        p.print_help()
        sys.exit(0)
    # Default to the two most common lookups
    if not any([args.digest, args.config_digest, args.labels]):
        args.digest = True
        args.labels = True
    return args
