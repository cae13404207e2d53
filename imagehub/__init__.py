"""ImageHub — IIIF manifest generation from ResourceSpace, Cantaloupe and the Datahub."""
