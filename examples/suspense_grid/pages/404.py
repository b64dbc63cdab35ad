def handler(ctx):
    return f"<h1>Nothing at {ctx.request.path}</h1>"
