from email_reminder.cli import main

main()
