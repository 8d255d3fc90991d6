from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request

from docker_datasource import config
from docker_datasource.datasource import DockerDatasource
from docker_datasource.log import configure_logging
from docker_datasource.modules.errors import ExternalHostError
from docker_datasource.modules.finders import extract_digest_from_response
from docker_datasource.modules.formatters import split_image_ref


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(config.LOG_LEVEL, json_output=True)
    app.state.datasource = DockerDatasource.from_config()
    try:
        yield
    finally:
        await app.state.datasource.aclose()


app = FastAPI(
    title="Docker Datasource API",
    description="""
**Docker Datasource API**
* Manifest and config digests for image tags
* Image labels (cached for 60 minutes)
    """,
    version="1.0.0",
    lifespan=lifespan,
    )


def get_datasource(request: Request) -> DockerDatasource:
    return request.app.state.datasource


def _locate(datasource: DockerDatasource, image: str, registry_url: str) -> dict:
    name, tag = split_image_ref(image)
    location = datasource.get_registry_repository(name, registry_url)
    return {
        "image": image,
        "registry": location.registry,
        "repository": location.repository,
        "tag": tag,
    }


def _host_error(e: ExternalHostError) -> HTTPException:
    return HTTPException(
        status_code=502,
        detail=f"Registry {e.host} failed: {e.err}"
    )


@app.get("/digest")
async def digest(
    image: str = Query(..., description="Image reference, e.g. nginx:1.25"),
    registry_url: str = Query(default=config.DEFAULT_REGISTRY_URL, description="Default registry"),
    datasource: DockerDatasource = Depends(get_datasource),
):
    """
    ## /digest

    Manifest digest the tag currently points at.

    - Example: `/digest?image=nginx:latest`
    """
    result = _locate(datasource, image, registry_url)
    try:
        manifest_response = await datasource.get_manifest_response(
            result["registry"], result["repository"], result["tag"]
        )
    except ExternalHostError as e:
        raise _host_error(e)
    if manifest_response is None:
        raise HTTPException(status_code=404, detail=f"No manifest found for {image}")
    result["digest"] = extract_digest_from_response(manifest_response)
    return result


@app.get("/config-digest")
async def config_digest(
    image: str = Query(..., description="Image reference, e.g. nginx:1.25"),
    registry_url: str = Query(default=config.DEFAULT_REGISTRY_URL, description="Default registry"),
    datasource: DockerDatasource = Depends(get_datasource),
):
    """
    ## /config-digest

    Digest of the image config blob (first platform of a multi-arch image).
    """
    result = _locate(datasource, image, registry_url)
    try:
        digest_value = await datasource.get_config_digest(
            result["registry"], result["repository"], result["tag"]
        )
    except ExternalHostError as e:
        raise _host_error(e)
    if digest_value is None:
        raise HTTPException(status_code=404, detail=f"No image config found for {image}")
    result["config_digest"] = digest_value
    return result


@app.get("/labels")
async def labels(
    image: str = Query(..., description="Image reference, e.g. nginx:1.25"),
    registry_url: str = Query(default=config.DEFAULT_REGISTRY_URL, description="Default registry"),
    datasource: DockerDatasource = Depends(get_datasource),
):
    """
    ## /labels

    Labels from the image config. Empty when the image can't be read.
    """
    result = _locate(datasource, image, registry_url)
    try:
        result["labels"] = await datasource.get_labels(
            result["registry"], result["repository"], result["tag"]
        )
    except ExternalHostError as e:
        raise _host_error(e)
    return result
