def render_result(result) -> str:
    """
    Formats a deobfuscation result the way it is posted back to users:
    a header, one line per layer removed, any warnings, then the code.
    """
    stats = result.statistics
    if not result.success:
        return "\n".join([
            "--- Moonsec Deobfuscation Failed ---",
            f"- Error: {result.error}",
            "\n--- Original Code ---",
            result.original_code,
        ])

    output = ["--- Moonsec Deobfuscation ---"]
    if stats.layers:
        for layer in stats.layers:
            output.append(f"- {layer.name}: {layer.count}")
    else:
        output.append("- No known obfuscation layers found.")
    output.append(
        f"- {stats.original_length} -> {stats.final_length} chars "
        f"({stats.reduction_percent}% reduction, {stats.processing_time_ms:.1f} ms)"
    )

    if result.warnings:
        output.append("\nWarnings:")
        output.extend(f"- {warning}" for warning in result.warnings)

    output.append("\n--- Cleaned Code ---")
    output.append(result.deobfuscated_code)
    return "\n".join(output)


def render_analysis(report) -> str:
    detected = [
        label for label, present in (
            ("Loadstring", report.has_loadstring),
            ("Base64", report.has_base64),
            ("Hex Encoding", report.has_hex),
            ("Concatenation", report.has_concatenation),
            ("Junk Code", report.has_junk_code),
        ) if present
    ]
    output = [
        "--- Obfuscation Analysis ---",
        f"Obfuscation Level: {report.obfuscation_level.upper()}",
        f"Code Size: {report.length} chars, {report.lines} lines",
        f"Complexity: {report.complexity.replace('-', ' ')}",
        f"Estimated Time: {report.estimated_time}",
        f"Patterns Detected: {', '.join(detected) if detected else 'None detected'}",
    ]
    output.extend(f"- {pattern}" for pattern in report.patterns_found)
    return "\n".join(output)


def render_batch(batch) -> str:
    output = [
        "--- Batch Deobfuscation ---",
        f"Processed {batch.processed}/{batch.total}: {batch.successful} succeeded, {batch.failed} failed",
    ]
    for item in batch.results:
        if item.success:
            output.append(f"- {item.filename}: OK ({item.statistics.layers_removed} layer(s) removed)")
        else:
            output.append(f"- {item.filename}: FAILED ({item.error})")
    return "\n".join(output)
