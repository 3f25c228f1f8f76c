PRIVACY_POLICY_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>Translation Proxy - Privacy Policy</title>
  <style>
    body{font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;
      line-height:1.7;color:#1a1a2e;background:#fafafa;padding:40px 20px;margin:0}
    .container{max-width:640px;margin:0 auto;background:#fff;border-radius:12px;
      padding:40px;box-shadow:0 1px 4px rgba(0,0,0,.06)}
    h1{font-size:22px;margin:0 0 24px}
    h2{font-size:16px;margin:24px 0 8px;color:#333}
    p,li{font-size:14px;color:#444}
  </style>
</head>
<body>
  <div class="container">
    <h1>Privacy Policy</h1>

    <h2>Data We Process</h2>
    <p>When you request translations, the following data is sent to this proxy:</p>
    <ul>
      <li>Text content of the selected text layers</li>
      <li>Layer names, used as context hints for more accurate translations</li>
      <li>The target locale code and, optionally, its label and currencies</li>
      <li>Your user ID, used solely for rate limiting</li>
    </ul>

    <h2>Third-Party Services</h2>
    <p>Text is forwarded in real time to Microsoft Azure Translator and, when
    enabled, to Google Gemini to polish formatting. Their own privacy terms
    apply to that processing.</p>

    <h2>Data Storage</h2>
    <p>No design content is stored or logged. The only stored data is a
    temporary request counter per user ID, which expires automatically
    after 24 hours.</p>
  </div>
</body>
</html>"""
