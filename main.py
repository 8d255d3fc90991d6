#  docker-datasource entry point
#  Usage: python main.py -t nginx:latest [--digest] [--labels] [--api]
from docker_datasource.main import main


if __name__ == "__main__":
    main()
