from lexigraph.app import build_application, set_application
from lexigraph.config.settings import Settings
from lexigraph.database.connection import close_pool, init_pool
from lexigraph.logging.logger import Log
from lexigraph.storage.s3_object_store import S3ObjectStore


def main() -> None:
    """Entry point: initialize stores -> build application -> start pool and poll loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    app = None
    try:
        object_store = S3ObjectStore.from_settings(settings)
        app = build_application(settings, object_store=object_store)
        set_application(app)
        app.doc_repo.ensure_schema()
        object_store.ensure_bucket()

        app.start()
        app.worker.run()
    finally:
        set_application(None)
        if app is not None:
            app.close()
        close_pool()


if __name__ == "__main__":
    main()
