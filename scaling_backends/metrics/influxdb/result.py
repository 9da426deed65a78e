import math

from scaling_backends.errors import DataShapeError, MetricQueryError

# Column 0 of every InfluxDB row is the timestamp
VALUE_COLUMN = 1


def extract_value(results, query=None):
    """
    Reduce an InfluxDB query response to a single float.

    Takes the value column of the first row of the first series of the first
    result. An empty response is an error rather than zero: a missing metric
    must not look like an idle cluster.

    Args:
        results: List of result dicts, each shaped like
                 {"series": [{"columns": [...], "values": [[time, value], ...]}]}
        query: Query string the results belong to, used in error messages

    Returns:
        float: The extracted value

    Raises:
        MetricQueryError: If a result carries an embedded error
        DataShapeError: If any level of the response is empty or the value is not numeric
    """
    if results is None:
        raise DataShapeError(f"no response for query {query!r}")

    for result in results:
        error = result.get('error') if isinstance(result, dict) else None
        if error:
            raise MetricQueryError(f"querying InfluxDB with string {query!r}: {error}", query=query)

    if not results:
        raise DataShapeError(f"no results for query {query!r}")

    result = results[0]
    if not isinstance(result, dict):
        raise DataShapeError(f"result {result!r} is not an object for query {query!r}")

    series = result.get('series') or []
    if not series:
        raise DataShapeError(f"no series in result for query {query!r}")

    first_series = series[0]
    if not isinstance(first_series, dict):
        raise DataShapeError(f"series {first_series!r} is not an object for query {query!r}")

    rows = first_series.get('values') or []
    if not rows:
        raise DataShapeError(f"no rows in series {first_series.get('name')!r} for query {query!r}")

    row = rows[0]
    if not isinstance(row, (list, tuple)) or len(row) <= VALUE_COLUMN:
        raise DataShapeError(f"no value column in first row {row!r} for query {query!r}")

    return parse_value(row[VALUE_COLUMN])


def parse_value(cell):
    """Parse a single response cell as a float."""
    if cell is None or isinstance(cell, bool):
        raise DataShapeError(f"value {cell!r} is not a number")

    try:
        value = float(cell)
    except (TypeError, ValueError) as e:
        raise DataShapeError(f"value {cell!r} is not a number") from e

    # NaN or infinity would pass for a real load reading
    if not math.isfinite(value):
        raise DataShapeError(f"value {cell!r} is not a finite number")

    return value
