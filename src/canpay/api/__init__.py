"""HTTP API for previewing, committing and reporting on pay runs."""
