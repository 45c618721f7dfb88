title = "runauth"
description = "Cloud Run service-to-service authentication with identity tokens"
license = "Apache-2.0"
version = "0.1.0"
