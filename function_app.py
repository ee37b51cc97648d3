import azure.functions as func

from watchnext_recommendation_service.blueprints import interactions_bp, items_bp, recommendations_bp

app = func.FunctionApp()

app.register_blueprint(recommendations_bp)
app.register_blueprint(interactions_bp)
app.register_blueprint(items_bp)
