"""DuckDB SQL templates of the aggregation pipeline.

Templates are plain strings with named ``str.format`` placeholders, each
documented next to its template. ``aggregation`` holds the steps shared by
every data type; ``surveillance`` the flu-only detail tables. Both are
re-exported so the pipeline reads ``sql.TEMPLATE_NAME``.
"""

from santepublique.data.vaccination_dashboard.sql.aggregation import *  # noqa: F403
from santepublique.data.vaccination_dashboard.sql.surveillance import *  # noqa: F403
