"""
Services layer - business logic and store adapters.

- upload_pipeline: local media -> durable URL
- submission_service: draft -> one `reports` record
- sos_dispatcher: identity/permission/location/contact -> one `sos_alerts` record
- live_map: two live collections -> one marker set
- report_feed: one user's reports, newest first, with local hide
"""
