# Scheduling module - conflict detection, reschedule pipeline and preference resolution
