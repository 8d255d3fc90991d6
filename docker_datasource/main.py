#  docker-datasource main CLI
#  Digest, config digest and label lookups for a single image
import asyncio
import json
import sys

from docker_datasource import config
from docker_datasource.datasource import DockerDatasource
from docker_datasource.log import configure_logging
from docker_datasource.modules.cli import parse_args
from docker_datasource.modules.errors import ExternalHostError
from docker_datasource.modules.finders import extract_digest_from_response
from docker_datasource.modules.formatters import split_image_ref


async def lookup(args, datasource: DockerDatasource) -> dict:
    """Run the requested lookups and collect the results."""
    name, tag = split_image_ref(args.image_ref)
    location = datasource.get_registry_repository(name, args.registry_url)

    result = {
        "image": args.image_ref,
        "registry": location.registry,
        "repository": location.repository,
        "tag": tag,
    }
    if args.digest:
        manifest_response = await datasource.get_manifest_response(
            location.registry, location.repository, tag
        )
        result["digest"] = None
        if manifest_response is not None:
            result["digest"] = extract_digest_from_response(manifest_response)
    if args.config_digest:
        result["config_digest"] = await datasource.get_config_digest(
            location.registry, location.repository, tag
        )
    if args.labels:
        result["labels"] = await datasource.get_labels(
            location.registry, location.repository, tag
        )
    return result


def print_result(result: dict) -> None:
    print(f"[*] {result['image']}")
    print(f"    Registry:   {result['registry']}")
    print(f"    Repository: {result['repository']}")
    print(f"    Tag:        {result['tag']}")
    if "digest" in result:
        print(f"    Digest:     {result['digest'] or '(not found)'}")
    if "config_digest" in result:
        print(f"    Config:     {result['config_digest'] or '(not found)'}")
    if "labels" in result:
        labels = result["labels"]
        if not labels:
            print("    Labels:     (none)")
        else:
            print(f"    Labels ({len(labels)}):")
            for key in sorted(labels):
                print(f"      {key}={labels[key]}")


def _resolved(result: dict) -> bool:
    values = [result.get(k) for k in ("digest", "config_digest", "labels") if k in result]
    return any(values)


async def run(args) -> int:
    async with DockerDatasource.from_config() as datasource:
        try:
            result = await lookup(args, datasource)
        except ExternalHostError as e:
            print(f"[!] Registry error: {e}", file=sys.stderr)
            return 2

    if args.json:
        print(json.dumps(result, indent=2, sort_keys=True))
    else:
        print_result(result)
    return 0 if _resolved(result) else 1


def main(argv=None):
    args = parse_args(argv)
    configure_logging("DEBUG" if args.verbose else config.LOG_LEVEL)

    # --- API server mode ---
    if args.api:
        import uvicorn
        print("[*] Starting API server on http://127.0.0.1:8000/docs")
        uvicorn.run("docker_datasource.modules.api.api:app", host="127.0.0.1", port=8000)
        return

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
