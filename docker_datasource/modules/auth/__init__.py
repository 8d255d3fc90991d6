from .auth import Challenge, RegistryAuth, basic_auth_header, parse_challenge
from .ecr import ECR_REGEX, ecr_region, get_ecr_auth_token
