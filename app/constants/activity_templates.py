from app.constants.activity_codes import ActivityCode


ACTIVITY_TEMPLATES = {
    # ---------------- QUOTES ----------------
    ActivityCode.CREATE_QUOTE:
        "{actor_label} created quote {target_name}",

    ActivityCode.UPDATE_QUOTE:
        "{actor_label} updated quote {target_name}: {changes}",

    ActivityCode.CHANGE_QUOTE_STATUS:
        "{actor_label} changed quote {target_name} status "
        "from {old_status} → {new_status}",

    ActivityCode.DELETE_QUOTE:
        "{actor_label} deleted quote {target_name}",
}


def render_activity(code: ActivityCode, **context) -> str:
    template = ACTIVITY_TEMPLATES.get(code)
    if not template:
        raise ValueError(f"No activity template for code {code}")

    try:
        return template.format(**context)
    except KeyError as e:
        raise ValueError(
            f"Missing activity context key: {e.args[0]} for {code}"
        )
