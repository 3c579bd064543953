"""SQLite schema management (code-first approach).

Tables owned by the notification core are created here together with the
read-only collaborator tables (users, preferences, projects, tasks) it reads.
"""

import logging

from src.core import db_client


logger = logging.getLogger(__name__)


_TIMESTAMP_DEFAULT = "(strftime('%Y-%m-%dT%H:%M:%f000+00:00', 'now'))"

# Central list of all collections in the schema, in creation order
COLLECTIONS = [
    "users",
    "notification_preferences",
    "projects",
    "tasks",
    "task_assignees",
    "reminders",
    "sweep_reminders",
    "delivery_logs",
    "activity_logs",
]

_TABLES: dict[str, str] = {
    "users": f"""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT,
            phone TEXT,
            role TEXT NOT NULL DEFAULT 'member' CHECK (role IN ('admin', 'manager', 'member')),
            is_active INTEGER NOT NULL DEFAULT 1,
            created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT}
        )
    """,
    "notification_preferences": f"""
        CREATE TABLE IF NOT EXISTS notification_preferences (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
            email_task_assigned INTEGER NOT NULL DEFAULT 1,
            email_task_updated INTEGER NOT NULL DEFAULT 1,
            email_task_due INTEGER NOT NULL DEFAULT 1,
            push_notifications INTEGER NOT NULL DEFAULT 1,
            sms_notifications INTEGER NOT NULL DEFAULT 0,
            updated TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT}
        )
    """,
    "projects": f"""
        CREATE TABLE IF NOT EXISTS projects (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            manager_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT}
        )
    """,
    "tasks": f"""
        CREATE TABLE IF NOT EXISTS tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT,
            due_date TEXT,
            priority TEXT NOT NULL DEFAULT 'MEDIUM' CHECK (priority IN ('LOW', 'MEDIUM', 'HIGH', 'URGENT')),
            status TEXT NOT NULL DEFAULT 'TODO'
                CHECK (status IN ('TODO', 'IN_PROGRESS', 'IN_REVIEW', 'COMPLETED', 'REJECTED', 'CANCELLED')),
            project_id INTEGER REFERENCES projects(id) ON DELETE CASCADE,
            created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
            updated TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT}
        )
    """,
    "task_assignees": f"""
        CREATE TABLE IF NOT EXISTS task_assignees (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'accepted', 'rejected')),
            confirmation_token TEXT NOT NULL UNIQUE,
            token_expires_at TEXT NOT NULL,
            assigned_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
            assigned_at TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
            responded_at TEXT,
            response_reason TEXT,
            UNIQUE (task_id, user_id)
        )
    """,
    "reminders": f"""
        CREATE TABLE IF NOT EXISTS reminders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            reminder_time TEXT NOT NULL,
            channel TEXT NOT NULL CHECK (channel IN ('email', 'sms', 'whatsapp')),
            message TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            sent_at TEXT,
            created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT}
        )
    """,
    "sweep_reminders": f"""
        CREATE TABLE IF NOT EXISTS sweep_reminders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            sweep_day TEXT NOT NULL,
            reminder_type TEXT NOT NULL CHECK (reminder_type IN ('overdue', 'due_today', 'due_tomorrow')),
            urgency TEXT NOT NULL,
            recipients_notified INTEGER NOT NULL DEFAULT 0,
            sent_at TEXT,
            created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
            UNIQUE (task_id, sweep_day)
        )
    """,
    "delivery_logs": f"""
        CREATE TABLE IF NOT EXISTS delivery_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            channel TEXT NOT NULL CHECK (channel IN ('email', 'sms', 'whatsapp')),
            recipient TEXT NOT NULL,
            subject TEXT,
            content TEXT NOT NULL,
            status TEXT NOT NULL CHECK (status IN ('sent', 'failed')),
            error_message TEXT,
            provider_message_id TEXT,
            sent_at TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT}
        )
    """,
    "activity_logs": f"""
        CREATE TABLE IF NOT EXISTS activity_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            action TEXT NOT NULL,
            entity_type TEXT NOT NULL,
            entity_id TEXT NOT NULL,
            details TEXT,
            created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT}
        )
    """,
}

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_reminders_pending ON reminders (is_active, sent_at, reminder_time)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_due ON tasks (status, due_date)",
    "CREATE INDEX IF NOT EXISTS idx_delivery_logs_channel_status ON delivery_logs (channel, status, sent_at)",
    "CREATE INDEX IF NOT EXISTS idx_activity_logs_entity ON activity_logs (entity_type, entity_id)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create every table and index if missing."""
    conn = await db_client.get_connection(db_path=db_path)

    for collection in COLLECTIONS:
        await conn.execute(_TABLES[collection])
        logger.debug("Ensured table", extra={"collection": collection})

    for statement in _INDEXES:
        await conn.execute(statement)

    await conn.commit()
    logger.info("Database schema initialized", extra={"collections": len(COLLECTIONS)})
