"""Service layer: reminders, dispatch, confirmation and logging of deliveries."""
