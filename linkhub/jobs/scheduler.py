import os

from apscheduler.schedulers.background import BackgroundScheduler

from linkhub.services.link_checks import sweep_stored_links

LINK_CHECK_JOB_ID = "link_check_sweep"

scheduler = BackgroundScheduler()


def start_scheduler(app):
    # The reloader's parent process must not sweep as well.
    if not app.config.get("SCHEDULER_ENABLED", True) or os.environ.get("WERKZEUG_RUN_MAIN") == "false":
        return
    if scheduler.get_job(LINK_CHECK_JOB_ID) is not None:
        return

    scheduler.add_job(
        sweep_stored_links,
        "interval",
        minutes=app.config["LINK_CHECK_INTERVAL_MINUTES"],
        kwargs={"app": app},
        id=LINK_CHECK_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    if not scheduler.running:
        scheduler.start()
    app.logger.info(
        "Link checks scheduled every %s minutes", app.config["LINK_CHECK_INTERVAL_MINUTES"]
    )
