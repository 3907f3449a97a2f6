from cronproc.schedule import Weekday
from cronproc.task import Task

def get_tasks():
    tasks = []

    # every hour, each 2 minutes starting from the 9th
    tasks.append(Task("mail", "sendInvites").named("Send invites via mail").minute("9/2"))

    # every day at 18:00, never two imports at once
    tasks.append(
        Task("import", "products", {"updateAll": 1}).named("Import products (daily@18:00)").daily().hour(18).unique()
    )

    # working days at 07:30
    tasks.append(Task("report").named("Morning report").cron("30 7 * * 1-5"))

    tasks.append(Task("cleanup", "tmp").named("Weekly cleanup").weekly().day_of_week(int(Weekday.SATURDAY)))
    return tasks
