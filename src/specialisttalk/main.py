"""Application entry point for SpecialistTalk backend server."""

from specialisttalk.app import App
from specialisttalk.config import Config
from specialisttalk.logging import setup_logging
from specialisttalk.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
