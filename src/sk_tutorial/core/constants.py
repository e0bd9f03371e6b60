"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_PAGE_SIZE = 50
PROFILE_LIST_LIMIT = 100
MIN_REPORT_YEAR = 2020

GRADES = ("Nursery", "LKG", "UKG", "1st", "2nd", "3rd", "4th", "5th", "6th", "7th", "8th", "9th")

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

# Collections
STUDENTS = "students"
ATTENDANCE = "students-attendance"
USERS = "users"
PROFILES = "studentsData"
OUTBOX = "email_outbox"

SYSTEM_CRON_USER = "system-cron"
