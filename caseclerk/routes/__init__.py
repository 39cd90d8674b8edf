def register_blueprints(app):
    from . import ai, auth, calendar_events, call_logs, cases, documents, health, users

    app.register_blueprint(health.bp)
    app.register_blueprint(auth.bp, url_prefix='/api/auth')
    app.register_blueprint(users.bp, url_prefix='/api/users')
    app.register_blueprint(cases.bp, url_prefix='/api/cases')
    app.register_blueprint(documents.bp, url_prefix='/api/documents')
    app.register_blueprint(call_logs.bp, url_prefix='/api/call-logs')
    app.register_blueprint(calendar_events.bp, url_prefix='/api/calendar-events')
    app.register_blueprint(ai.bp, url_prefix='/api/ai')
